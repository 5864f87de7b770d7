"""
Configuration module for foxprefs.

Uses pydantic-settings for environment variable loading.
"""

from foxprefs.config.settings import OutputType, Settings

__all__ = ["OutputType", "Settings"]
