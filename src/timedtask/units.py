"""Zeiteinheiten für Taktung und Statistik-Ausgabe.

Jede Einheit ist ein ganzzahliger Skalierungsfaktor in Nanosekunden:
  - period_ns = rate * unit
  - Statistiken werden in eine Einheit zurückskaliert (ns / unit)
"""

from __future__ import annotations

from enum import IntEnum

from timedtask.errors import ConfigError


class TimeUnit(IntEnum):
    """Zeiteinheit, Wert = Anzahl Nanosekunden."""

    NANOSECONDS = 1
    MICROSECONDS = 1_000
    MILLISECONDS = 1_000_000
    SECONDS = 1_000_000_000
    MINUTES = 60 * 1_000_000_000
    HOURS = 60 * 60 * 1_000_000_000

    @property
    def display_name(self) -> str:
        return self.name.lower()

    def to_ns(self, amount: int) -> int:
        """Rechnet ``amount`` Einheiten in Nanosekunden um."""
        return int(amount) * int(self)

    def from_ns(self, ns: int | float) -> float:
        """Skaliert einen Nanosekunden-Wert in diese Einheit."""
        return float(ns) / int(self)

    @classmethod
    def parse(cls, value: TimeUnit | int | str) -> TimeUnit:
        """Akzeptiert TimeUnit, Integer-Faktor oder Namen ("ms", "Seconds")."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        elif isinstance(value, str):
            key = value.strip().lower()
            unit = _ALIASES.get(key)
            if unit is not None:
                return unit
        raise ConfigError(
            f"Unknown time unit: {value!r}",
            error_code="CONFIG_INVALID_UNIT",
            details={"value": repr(value)},
        )


_ALIASES: dict[str, TimeUnit] = {
    "ns": TimeUnit.NANOSECONDS,
    "us": TimeUnit.MICROSECONDS,
    "µs": TimeUnit.MICROSECONDS,
    "ms": TimeUnit.MILLISECONDS,
    "s": TimeUnit.SECONDS,
    "sec": TimeUnit.SECONDS,
    "min": TimeUnit.MINUTES,
    "h": TimeUnit.HOURS,
}
for _unit in TimeUnit:
    _ALIASES[_unit.name.lower()] = _unit
    _ALIASES[_unit.name.lower().rstrip("s")] = _unit


def period_ns(rate: int, unit: TimeUnit | int | str) -> int:
    """Periode in Nanosekunden. ``rate == 0`` bedeutet "nicht ausführen"."""
    if isinstance(rate, bool) or not isinstance(rate, int):
        raise ConfigError(
            f"rate must be an integer, got {rate!r}",
            error_code="CONFIG_INVALID_RATE",
            details={"rate": repr(rate)},
        )
    if rate < 0:
        raise ConfigError(
            f"rate must be >= 0, got {rate}",
            error_code="CONFIG_INVALID_RATE",
            details={"rate": rate},
        )
    return TimeUnit.parse(unit).to_ns(rate)
