"""XML request builders and response parsers for the EAGLE energy gateway.

Two wire formats are supported:

Cloud REST API 1.1 (``get_instantaneous_demand``) answers with hex tokens
that must be scaled by the accompanying multiplier and divisor::

    <InstantaneousDemand>
      <Demand>0x001738</Demand>
      <Multiplier>0x00000001</Multiplier>
      <Divisor>0x000003e8</Divisor>
    </InstantaneousDemand>

Local API (``device_query``) answers with a signed decimal already in kW::

    <Device>
      <Components><Component><Variables>
        <Variable><Name>zigbee:InstantaneousDemand</Name><Value>-0.512</Value></Variable>
      </Variables></Component></Components>
    </Device>

Responses that lack the demand value are checked for the two gateway
distress signatures before being reported as unparsable.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from solar_switch.errors import GatewayFault, GatewayFaultKind, UnparsableResponse

DEMAND_VARIABLE = "zigbee:InstantaneousDemand"

# Meter reports reverse flow as a wrapped unsigned 32-bit value
_UINT32_MAX = 0xFFFFFFFF

# Checked in this order; one fault per response
_FAULT_SIGNATURES = (GatewayFaultKind.REQUEST_TIMEOUT, GatewayFaultKind.SERVICE_UNAVAILABLE)


@dataclass(frozen=True)
class CloudDemand:
    """Decoded fields of a cloud ``InstantaneousDemand`` response."""

    raw: float
    multiplier: float
    divisor: float

    @property
    def demand_kw(self) -> float:
        return self.raw * self.multiplier / self.divisor


# ── Requests ─────────────────────────────────────────


def _command(name: str) -> ET.Element:
    root = ET.Element("Command")
    ET.SubElement(root, "Name").text = name
    return root


def _serialize(root: ET.Element) -> str:
    return ET.tostring(root, encoding="unicode")


def build_cloud_demand_query(mac_id: str) -> str:
    root = _command("get_instantaneous_demand")
    ET.SubElement(root, "MacId").text = mac_id
    return _serialize(root)


def build_device_list_query() -> str:
    return _serialize(_command("device_list"))


def build_local_demand_query(hardware_address: str) -> str:
    root = _command("device_query")
    details = ET.SubElement(root, "DeviceDetails")
    ET.SubElement(details, "HardwareAddress").text = hardware_address
    component = ET.SubElement(ET.SubElement(root, "Components"), "Component")
    ET.SubElement(component, "Name").text = "Main"
    variable = ET.SubElement(ET.SubElement(component, "Variables"), "Variable")
    ET.SubElement(variable, "Name").text = DEMAND_VARIABLE
    return _serialize(root)


# ── Responses ────────────────────────────────────────


def detect_gateway_fault(text: str) -> GatewayFaultKind | None:
    """Return the distress signature found in a response body, if any."""
    for kind in _FAULT_SIGNATURES:
        if kind.value in text:
            return kind
    return None


def _missing_value(text: str, what: str) -> Exception:
    kind = detect_gateway_fault(text)
    if kind is not None:
        return GatewayFault(kind)
    return UnparsableResponse(f"No {what} in gateway response: {text[:200]!r}")


def _parse_root(text: str) -> ET.Element | None:
    try:
        return ET.fromstring(text.strip())
    except ET.ParseError:
        return None


def _find_text(root: ET.Element, tag: str) -> str | None:
    element = next(root.iter(tag), None)
    if element is None or element.text is None:
        return None
    token = element.text.strip()
    return token or None


def parse_number(token: str) -> float:
    """Parse a hex (``0x``-prefixed) or decimal token."""
    try:
        if token[:2].lower() == "0x":
            return float(int(token, 16))
        return float(token)
    except ValueError as e:
        raise UnparsableResponse(f"Invalid numeric token {token!r}") from e


def decode_signed_demand(token: str) -> float:
    """Decode a demand token, correcting the meter's wrapped negative encoding.

    When the first hex digit after ``0x`` is ``f`` the meter is exporting and
    the value is ``-(0xFFFFFFFF - raw)``.
    """
    raw = parse_number(token)
    if token[2:3].lower() == "f":
        raw = (_UINT32_MAX - raw) * -1
    return raw


def _scale_factor(token: str | None) -> float:
    if token is None:
        return 1.0
    value = parse_number(token)
    return value if value != 0 else 1.0


def parse_cloud_demand(text: str) -> CloudDemand:
    """Decode a cloud ``get_instantaneous_demand`` response.

    Raises:
        GatewayFault: the body carries a known gateway distress signature.
        UnparsableResponse: no usable ``<Demand>`` value.
    """
    root = _parse_root(text)
    token = _find_text(root, "Demand") if root is not None else None
    if token is None:
        raise _missing_value(text, "<Demand>")
    return CloudDemand(
        raw=decode_signed_demand(token),
        multiplier=_scale_factor(_find_text(root, "Multiplier")),
        divisor=_scale_factor(_find_text(root, "Divisor")),
    )


def parse_local_demand(text: str) -> float:
    """Decode a local ``device_query`` response into signed kW."""
    root = _parse_root(text)
    token = None
    if root is not None:
        for variable in root.iter("Variable"):
            if _find_text(variable, "Name") == DEMAND_VARIABLE:
                token = _find_text(variable, "Value")
                break
    if token is None:
        raise _missing_value(text, DEMAND_VARIABLE)
    return parse_number(token)


def parse_hardware_address(text: str) -> str:
    """Pick the meter's hardware address out of a ``device_list`` response.

    Prefers a device whose model is ``electric_meter``; otherwise the first listed.
    """
    root = _parse_root(text)
    if root is None:
        raise _missing_value(text, "device list")
    first: str | None = None
    for device in root.iter("Device"):
        address = _find_text(device, "HardwareAddress")
        if address is None:
            continue
        if _find_text(device, "ModelId") == "electric_meter":
            return address
        first = first or address
    if first is None:
        raise _missing_value(text, "<HardwareAddress>")
    return first
