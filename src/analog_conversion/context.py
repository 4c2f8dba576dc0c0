"""Conversion context: the registries and preferences a spec is built against.

Callers build one context at startup and pass it explicitly, so tests can
swap in alternate field or profile registries.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from analog_conversion.core.exceptions import UnknownConverterError
from analog_conversion.domain.fields import FieldRegistry, FieldType, StaticFieldRegistry
from analog_conversion.profiles import DEFAULT_PROFILES, ProfileRegistry, build_default_profiles
from analog_conversion.settings.base import AnalogSettings
from analog_conversion.spec import ConversionSpec, parse_conversion_spec

logger = structlog.get_logger(__name__)

# (index, spec text, context) -> spec
ConverterFactory = Callable[[int, str, "ConversionContext"], ConversionSpec]

STANDARD_CONVERTER = "standard"


def _standard_factory(index: int, text: str, context: ConversionContext) -> ConversionSpec:
    return parse_conversion_spec(text, index, context)


class ConverterFactoryRegistry:
    """Read-only map from a configured converter id to the callable that builds its specs.

    The standard parser is always registered; use :meth:`with_factory` to
    derive a registry with more entries.
    """

    def __init__(self, factories: Mapping[str, ConverterFactory] | None = None) -> None:
        entries: dict[str, ConverterFactory] = {STANDARD_CONVERTER: _standard_factory}
        if factories:
            entries.update(factories)
        self._factories: Mapping[str, ConverterFactory] = MappingProxyType(entries)

    def with_factory(self, name: str, factory: ConverterFactory) -> ConverterFactoryRegistry:
        """Return a new registry with ``factory`` registered under ``name``."""
        return ConverterFactoryRegistry({**self._factories, name: factory})

    def get(self, name: str | None) -> ConverterFactory:
        key = name or STANDARD_CONVERTER
        try:
            return self._factories[key]
        except KeyError:
            raise UnknownConverterError(f"Unknown analog converter: {key}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._factories


@dataclass(frozen=True)
class ConversionContext:
    fields: FieldRegistry
    profiles: ProfileRegistry = DEFAULT_PROFILES
    use_curve_fit: bool = True
    curve_fit_precision: str | None = None
    factories: ConverterFactoryRegistry = field(default_factory=ConverterFactoryRegistry)

    @classmethod
    def from_settings(
        cls,
        settings: AnalogSettings,
        fields: FieldRegistry | Mapping[str, FieldType | str],
        *,
        factories: ConverterFactoryRegistry | None = None,
    ) -> ConversionContext:
        registry = fields if not isinstance(fields, Mapping) else StaticFieldRegistry(fields)
        profiles = (
            build_default_profiles(settings.curve_fit_precision)
            if settings.curve_fit_precision
            else DEFAULT_PROFILES
        )
        return cls(
            fields=registry,
            profiles=profiles,
            use_curve_fit=settings.use_curve_fit,
            curve_fit_precision=settings.curve_fit_precision,
            factories=factories or ConverterFactoryRegistry(),
        )


def new_conversion_spec(
    index: int,
    text: str,
    context: ConversionContext,
    factory_id: str | None = None,
) -> ConversionSpec | None:
    """Build a spec through the configured factory; None when it fails or is invalid.

    Raises:
        UnknownConverterError: ``factory_id`` is not registered.
    """
    factory = context.factories.get(factory_id)
    try:
        spec = factory(index, text, context)
    except Exception:
        logger.exception("analog_converter_factory_failed", index=index, factory=factory_id, spec=text)
        return None
    if spec is None or not spec.valid:
        logger.warning("analog_spec_rejected", index=index, spec=text)
        return None
    return spec
