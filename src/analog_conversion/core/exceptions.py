"""Exception classes for analog conversion."""
from __future__ import annotations


class AnalogConversionError(Exception):
    """Base error for analog conversion."""


class ProfileParseError(AnalogConversionError):
    """Raised when a single profile point cannot be parsed."""


class CurveFitError(AnalogConversionError):
    """Raised when an invalid curve-fit model is evaluated."""


class UnsupportedFieldTypeError(AnalogConversionError):
    """Raised when a destination field declares a type that cannot hold a converted value."""


class ConfigurationError(AnalogConversionError):
    """Raised when analog configuration cannot be loaded or validated."""


class UnknownConverterError(ConfigurationError):
    """Raised when a converter factory id is not registered."""
