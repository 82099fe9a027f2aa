"""Configuration providers."""

from .provider import APIConfig, ConfigProvider, EngineSettings, EnvConfigProvider

__all__ = ["APIConfig", "ConfigProvider", "EngineSettings", "EnvConfigProvider"]
