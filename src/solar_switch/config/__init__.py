"""Configuration management for Solar Switch."""

from solar_switch.config.schema import AppConfig
from solar_switch.config.manager import ConfigManager

__all__ = ["AppConfig", "ConfigManager"]
