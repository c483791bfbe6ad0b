"""Solar Switch: solar surplus and off-peak rate controller for a switched load."""

try:
    from importlib.metadata import version as _pkg_version
    __version__ = _pkg_version("solar-switch")
except Exception:
    __version__ = "dev"
