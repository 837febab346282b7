"""Configuration system for aecg."""

from .loaders import ConfigLoader
from .models import CodecSettings, Settings, ValidationSettings

__all__ = [
    "CodecSettings",
    "ConfigLoader",
    "Settings",
    "ValidationSettings",
]
