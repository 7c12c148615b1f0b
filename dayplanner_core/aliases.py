"""Energy tag alias resolution.

Generators describe energy in many ways (canonical names, emoji, plain
adjectives). These map to the canonical EnergyLevel values.
"""

from __future__ import annotations

from .models import EnergyLevel

ENERGY_ALIASES: dict[str, EnergyLevel] = {
    "🌅": EnergyLevel.SUNRISE,
    "high": EnergyLevel.SUNRISE,
    "sharp": EnergyLevel.SUNRISE,
    "focus": EnergyLevel.SUNRISE,
    "sharp focus": EnergyLevel.SUNRISE,
    "☀️": EnergyLevel.DAYLIGHT,
    "☀": EnergyLevel.DAYLIGHT,
    "medium": EnergyLevel.DAYLIGHT,
    "steady": EnergyLevel.DAYLIGHT,
    "steady work": EnergyLevel.DAYLIGHT,
    "🌙": EnergyLevel.MOONLIGHT,
    "low": EnergyLevel.MOONLIGHT,
    "gentle": EnergyLevel.MOONLIGHT,
    "gentle flow": EnergyLevel.MOONLIGHT,
}


def resolve_energy(raw: str) -> EnergyLevel:
    """Resolve a raw energy string to a canonical EnergyLevel.

    Accepts canonical values (e.g. "sunrise"), emoji (e.g. "🌙") and
    case-insensitive adjectives (e.g. "High").
    Raises ValueError for unknown energy tags.
    """
    value = raw.strip()
    try:
        return EnergyLevel(value.lower())
    except ValueError:
        pass
    if value in ENERGY_ALIASES:
        return ENERGY_ALIASES[value]
    if value.lower() in ENERGY_ALIASES:
        return ENERGY_ALIASES[value.lower()]
    raise ValueError(f"Unknown energy: {raw!r}")
