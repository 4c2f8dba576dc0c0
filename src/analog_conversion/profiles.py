"""Built-in ("canned") calibration profiles.

A canned profile is referenced from a spec by name, e.g.
``[PercentLevelCylinder:0.02],fuelLevel``. The x-values of every canned
profile are scaled to 0..1, so the raw reading is usually multiplied by a
scale first.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from analog_conversion.curvefit import CurveFit
from analog_conversion.domain.points import XYPoint

CYLINDER_POINTS: tuple[XYPoint, ...] = (
    XYPoint(0.000, 0.0000000),
    XYPoint(0.125, 0.0721468),
    XYPoint(0.250, 0.1955011),
    XYPoint(0.375, 0.3425188),
    XYPoint(0.500, 0.5000000),
    XYPoint(0.625, 0.6574812),
    XYPoint(0.750, 0.8044989),
    XYPoint(0.875, 0.9278532),
    XYPoint(1.000, 1.0000000),
)

LINEAR_POINTS: tuple[XYPoint, ...] = (
    XYPoint(0.000, 0.0000000),
    XYPoint(1.000, 1.0000000),
)

CYLINDER_NAMES = (
    "LevelCylinder",
    "TankLevelCylinder",
    "FuelLevelCylinder",
    "PercentLevelCylinder",
    "SensorLevelCylinder",
)

LINEAR_NAMES = (
    "LevelLinear",
    "TankLevelLinear",
    "FuelLevelLinear",
    "PercentLevelLinear",
    "SensorLevelLinear",
)


@dataclass(frozen=True, slots=True)
class CannedProfile:
    """Named built-in point set with its pre-built curve fit."""

    key: str
    names: tuple[str, ...]
    points: tuple[XYPoint, ...]
    curve: CurveFit
    description: str = ""

    def matches(self, content: str) -> bool:
        text = content.strip().lower()
        return any(text.startswith(name.lower()) for name in self.names)


def canned_profile(
    key: str,
    names: Iterable[str],
    points: Iterable[XYPoint],
    description: str = "",
    *,
    precision_override: str | None = None,
) -> CannedProfile:
    pts = tuple(points)
    return CannedProfile(
        key=key,
        names=tuple(names),
        points=pts,
        curve=CurveFit(pts, precision_override=precision_override),
        description=description,
    )


class ProfileRegistry:
    """Immutable, ordered set of canned profiles.

    Lookup is case-insensitive and prefix tolerant: bracket content such as
    ``"PercentLevelCylinder:0.02"`` matches the name ``PercentLevelCylinder``.
    When several profiles match, the first registered one wins.
    """

    def __init__(self, profiles: Iterable[CannedProfile] = ()) -> None:
        self._profiles: tuple[CannedProfile, ...] = tuple(profiles)

    def match(self, content: str) -> CannedProfile | None:
        if not content or not content.strip():
            return None
        for profile in self._profiles:
            if profile.matches(content):
                return profile
        return None

    def get(self, key: str) -> CannedProfile | None:
        for profile in self._profiles:
            if profile.key.lower() == key.lower():
                return profile
        return None

    def with_profile(self, profile: CannedProfile) -> ProfileRegistry:
        """Return a new registry with ``profile`` appended."""
        return ProfileRegistry((*self._profiles, profile))

    def __iter__(self) -> Iterator[CannedProfile]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)


def build_default_profiles(precision_override: str | None = None) -> ProfileRegistry:
    """Cylinder-tank and linear-tank profiles, cylinder first."""
    return ProfileRegistry(
        (
            canned_profile(
                "cylinder",
                CYLINDER_NAMES,
                CYLINDER_POINTS,
                "Horizontal cylinder (measured percent)",
                precision_override=precision_override,
            ),
            canned_profile(
                "linear",
                LINEAR_NAMES,
                LINEAR_POINTS,
                "Linear profile (measured percent)",
                precision_override=precision_override,
            ),
        )
    )


# Built once at import; pass an alternate registry through ConversionContext to override.
DEFAULT_PROFILES = build_default_profiles()
