from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from analog_conversion.context import ConversionContext, ConverterFactoryRegistry
from analog_conversion.core.exceptions import ConfigurationError
from analog_conversion.domain.fields import StaticFieldRegistry
from analog_conversion.lookup import AnalogSpecTable, build_analog_map
from analog_conversion.settings import get_settings
from analog_conversion.settings.base import AnalogSettings
from analog_conversion.settings.yaml_loader import load_analog_yaml


def _scalar_to_str(value: Any) -> Any:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    return value


class AnalogConfig(BaseModel):
    # destination field name -> declared type name ("double", "int64", ...)
    fields: dict[str, str] = Field(default_factory=dict)
    # property group id -> {"analog.1": "<spec>", ...}
    groups: dict[str, dict[str, str]] = Field(default_factory=dict)
    converter: str | None = None

    @field_validator("fields", mode="before")
    @classmethod
    def _field_types_as_str(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _scalar_to_str(v) for k, v in value.items()}
        return value

    @field_validator("groups", mode="before")
    @classmethod
    def _group_values_as_str(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {
                str(group): (
                    {str(k): _scalar_to_str(v) for k, v in props.items()}
                    if isinstance(props, dict)
                    else props
                )
                for group, props in value.items()
            }
        return value

    @field_validator("fields")
    @classmethod
    def _strip_field_names(cls, value: dict[str, str]) -> dict[str, str]:
        # unsupported types are kept; they are reported when a value is written
        return {name.strip(): ftype.strip() for name, ftype in value.items() if name.strip()}

    def field_registry(self) -> StaticFieldRegistry:
        return StaticFieldRegistry(self.fields)


def load_config(path: str | Path | None = None) -> AnalogConfig:
    """Load and validate analog.yaml; an absent file gives an empty config."""
    data = load_analog_yaml(Path(path) if path is not None else None)
    try:
        return AnalogConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid analog configuration: {exc}") from exc


def build_context(
    config: AnalogConfig,
    settings: AnalogSettings,
    *,
    factories: ConverterFactoryRegistry | None = None,
) -> ConversionContext:
    return ConversionContext.from_settings(settings, config.field_registry(), factories=factories)


def load_analog_table(
    settings: AnalogSettings | None = None,
    *,
    factories: ConverterFactoryRegistry | None = None,
) -> tuple[ConversionContext, AnalogSpecTable]:
    """Read the configured YAML and publish its spec map.

    Without explicit ``settings`` the process settings from :func:`get_settings`
    are used.

    Raises:
        ConfigurationError: invalid settings, YAML or schema.
    """
    if settings is None:
        try:
            settings = get_settings()
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid analog settings: {exc}") from exc
    config = load_config(settings.config_path)
    context = build_context(config, settings, factories=factories)
    spec_map = build_analog_map(
        config.groups,
        context,
        key_prefix=settings.key_prefix,
        channel_count=settings.channel_count,
        factory_id=config.converter,
    )
    table = AnalogSpecTable(spec_map, default_group_id=settings.default_group_id)
    return context, table


__all__ = ["AnalogConfig", "build_context", "load_analog_table", "load_config"]
