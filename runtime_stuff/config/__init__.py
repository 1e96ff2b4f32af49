"""
Configuration management for the runtime engine.
"""

from runtime_stuff.config.loader import (
    CacheConfig,
    ConfigLoader,
    ConstructionConfig,
    ConversionConfig,
    EngineConfig,
    LoggingConfig,
    ResolutionConfig,
    configure,
    get_config,
)

__all__ = [
    "CacheConfig",
    "ConfigLoader",
    "ConstructionConfig",
    "ConversionConfig",
    "EngineConfig",
    "LoggingConfig",
    "ResolutionConfig",
    "configure",
    "get_config",
]
