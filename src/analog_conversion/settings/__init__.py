"""Application settings.

Settings are built on first use through :func:`get_settings`, so a bad
``ANALOG_*`` variable only affects code that actually reads settings.
"""
from __future__ import annotations

from functools import lru_cache

from analog_conversion.settings.base import AnalogSettings


@lru_cache
def get_settings() -> AnalogSettings:
    return AnalogSettings()


__all__ = ["AnalogSettings", "get_settings"]
