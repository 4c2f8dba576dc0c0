"""Per property-group analog spec maps.

Specs are stored under ``"<groupID>.analog.<index>"``. A device whose group
has no entry for a channel falls back to the default group's entry.

Usage::

    spec_map = build_analog_map(config.groups, context)
    table = AnalogSpecTable(spec_map)
    table.convert_and_save(record, 1, raw_value, group_id="heavy-trucks")
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from types import MappingProxyType

import structlog

from analog_conversion.context import ConversionContext, new_conversion_spec
from analog_conversion.converter import convert, write_outputs
from analog_conversion.domain.fields import Record
from analog_conversion.spec import ConversionSpec

logger = structlog.get_logger(__name__)

DEFAULT_GROUP_ID = "default"
DEFAULT_KEY_PREFIX = "analog."
DEFAULT_CHANNEL_COUNT = 8

SpecMap = Mapping[str, ConversionSpec]


def analog_key(group_id: str, index: int) -> str:
    return f"{group_id}.analog.{index}"


def build_analog_map(
    groups: Mapping[str, Mapping[str, str]] | None,
    context: ConversionContext,
    *,
    key_prefix: str = DEFAULT_KEY_PREFIX,
    channel_count: int = DEFAULT_CHANNEL_COUNT,
    factory_id: str | None = None,
) -> SpecMap | None:
    """Build the read-only spec map from property groups.

    ``groups`` maps a property group id to its properties; channel ``n`` is
    read from the property ``f"{key_prefix}{n}"``. Invalid specs are logged
    and left out. Returns None when no groups were given.
    """
    if groups is None:
        return None

    entries: dict[str, ConversionSpec] = {}
    for group_id, properties in groups.items():
        for index in range(1, channel_count + 1):
            text = properties.get(f"{key_prefix}{index}")
            if text is None or not str(text).strip():
                continue
            spec = new_conversion_spec(index, str(text), context, factory_id)
            if spec is None:
                continue
            spec = spec.with_group(group_id)
            logger.debug("analog_spec_loaded", key=analog_key(group_id, index), spec=str(spec))
            entries[analog_key(group_id, index)] = spec
    return MappingProxyType(entries)


def get_conversion_spec(
    spec_map: SpecMap | None,
    index: int,
    group_id: str | None = None,
    *,
    default_group_id: str = DEFAULT_GROUP_ID,
) -> ConversionSpec | None:
    """Spec for ``index`` in ``group_id``, else in the default group."""
    if spec_map is None:
        return None
    if group_id:
        spec = spec_map.get(analog_key(group_id, index))
        if spec is not None:
            return spec
    return spec_map.get(analog_key(default_group_id, index))


def convert_and_save(
    record: Record | None,
    index: int,
    value: float,
    spec_map: SpecMap | None,
    group_id: str | None = None,
    *,
    default_group_id: str = DEFAULT_GROUP_ID,
) -> bool:
    """Look up the channel spec, convert ``value`` and write it into ``record``."""
    if math.isnan(value):
        return False
    if spec_map is None:
        return False
    if record is None:
        return False
    spec = get_conversion_spec(spec_map, index, group_id, default_group_id=default_group_id)
    if spec is None or not spec.valid:
        return False
    return write_outputs(spec, record, convert(spec, value))


def log_analog_map(spec_map: SpecMap | None) -> None:
    if not spec_map:
        return
    for key, spec in spec_map.items():
        logger.info("analog_input", key=key, index=spec.index, spec=str(spec))


class AnalogSpecTable:
    """Holds the published spec map.

    :meth:`reload` replaces the whole mapping in one reference assignment;
    readers holding the previous mapping keep a consistent view.
    """

    def __init__(self, spec_map: SpecMap | None = None, *, default_group_id: str = DEFAULT_GROUP_ID) -> None:
        self._map: SpecMap | None = spec_map
        self._default_group_id = default_group_id

    @property
    def spec_map(self) -> SpecMap | None:
        return self._map

    def reload(self, spec_map: SpecMap | None) -> None:
        if spec_map is not None and not isinstance(spec_map, MappingProxyType):
            spec_map = MappingProxyType(dict(spec_map))
        self._map = spec_map
        logger.info("analog_map_reloaded", entries=len(spec_map) if spec_map is not None else 0)

    def get(self, index: int, group_id: str | None = None) -> ConversionSpec | None:
        return get_conversion_spec(self._map, index, group_id, default_group_id=self._default_group_id)

    def convert_and_save(
        self, record: Record | None, index: int, value: float, group_id: str | None = None
    ) -> bool:
        return convert_and_save(
            record, index, value, self._map, group_id, default_group_id=self._default_group_id
        )
