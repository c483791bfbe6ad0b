"""Pydantic configuration models for all controller settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class ControlConfig(BaseModel):
    interval_seconds: int = Field(120, ge=1)
    load_kw: float = Field(1.4, ge=0.0)  # Draw of the switched load when running
    threshold_kw: float = 0.0  # Demand at or below this counts as surplus
    load_name: str = "EV charger"


class RateWindowConfig(BaseModel):
    """Low-cost utility rate window in local wall-clock hours.

    Half-open [start_hour, end_hour). start_hour > end_hour wraps past
    midnight; start_hour == end_hour disables the window.
    """
    start_hour: int = Field(23, ge=0, le=23)
    end_hour: int = Field(7, ge=0, le=23)
    timezone: str = "America/Los_Angeles"


class MeterConfig(BaseModel):
    protocol: Literal["cloud", "local"] = "cloud"
    url: str = "https://rainforestcloud.com:9445/cgi-bin/post_manager"
    cloud_id: str = ""
    user: str = ""
    password: str = ""
    install_code: str = ""  # Local API basic-auth password
    hardware_address: str = ""  # Required for cloud; discovered for local
    connect_timeout_seconds: float = 5.0
    timeout_seconds: float = 30.0

    @model_validator(mode="after")
    def _cloud_needs_address(self) -> MeterConfig:
        if self.protocol == "cloud" and not self.hardware_address:
            raise ValueError("meter.hardware_address is required for the cloud protocol")
        return self


class RelayEndpointConfig(BaseModel):
    """On/off command URLs for one relay output."""
    name: str = "switch"
    on_url: str
    off_url: str
    username: str = ""
    password: str = ""
    timeout_seconds: float = 10.0


class SwitchConfig(BaseModel):
    primary: RelayEndpointConfig = RelayEndpointConfig(
        name="load",
        on_url="http://192.168.1.35:25105/3?0262418C4B0F3202=I=3",
        off_url="http://192.168.1.35:25105/3?0262418C4B0F3302=I=3",
    )
    auxiliary: RelayEndpointConfig | None = None


class GatewayConfig(BaseModel):
    power_switch: RelayEndpointConfig = RelayEndpointConfig(
        name="gateway",
        on_url="http://192.168.1.35:25105/3?02623765240F12FF=I=3",
        off_url="http://192.168.1.35:25105/3?02623765240F1400=I=3",
    )
    off_delay_seconds: float = Field(5.0, ge=0.0)
    boot_delay_seconds: float = Field(60.0, ge=0.0)


class StartupConfig(BaseModel):
    gateway_boot_wait_seconds: float = Field(60.0, ge=0.0)
    max_attempts: int = Field(5, ge=0)  # 0 = retry forever
    retry_initial_seconds: float = Field(5.0, gt=0.0)
    retry_max_seconds: float = Field(300.0, gt=0.0)


class NotificationConfig(BaseModel):
    enabled: bool = True
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    security: Literal["ssl", "starttls", "none"] = "ssl"
    username: str = ""
    password: str = ""
    sender: str = ""
    sender_name: str = "Solar Switch"
    recipients: list[str] = Field(default_factory=list)  # Email or SMS gateway addresses
    timeout_seconds: float = 30.0


class ResilienceConfig(BaseModel):
    max_consecutive_failures: int = Field(3, ge=1)
    # Per-path overrides keyed by meter, switch or notifier
    component_limits: dict[Literal["meter", "switch", "notifier"], int] = Field(
        default_factory=lambda: {"switch": 2},
    )

    @model_validator(mode="after")
    def _limits_positive(self) -> ResilienceConfig:
        if any(limit < 1 for limit in self.component_limits.values()):
            raise ValueError("resilience.component_limits values must be at least 1")
        return self


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"
    file: str = ""
    max_bytes: int = Field(1_000_000, ge=1024)
    backup_count: int = Field(3, ge=0)


class AppConfig(BaseModel):
    """Root configuration model containing all controller settings."""

    control: ControlConfig = ControlConfig()
    rate_window: RateWindowConfig = RateWindowConfig()
    meter: MeterConfig = MeterConfig(hardware_address="0x0000000000000000")
    switch: SwitchConfig = SwitchConfig()
    gateway: GatewayConfig = GatewayConfig()
    startup: StartupConfig = StartupConfig()
    notifications: NotificationConfig = NotificationConfig()
    resilience: ResilienceConfig = ResilienceConfig()
    logging: LoggingConfig = LoggingConfig()
