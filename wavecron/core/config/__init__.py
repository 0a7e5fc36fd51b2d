"""Configuration module."""

from wavecron.core.config.schema import Config

__all__ = ["Config"]
