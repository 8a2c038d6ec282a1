"""Timing-Statistik pro Zyklus.

Sammelt für jeden abgeschlossenen Zyklus:
  - Abweichung |(end - start) - expected| (Fehler)
  - Kompensation (tatsächlich geplante Schlafzeit)
  - Max/Min-Fehler
  - Anzahl Zyklen über der Toleranzgrenze (Default: 105 % der Periode)

Alle Werte werden intern in Nanosekunden (int) akkumuliert und erst bei
``summarize()`` in die gewünschte Einheit skaliert.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any

from timedtask.errors import ConfigError
from timedtask.units import TimeUnit

UINT64_MAX = 2**64 - 1
DEFAULT_TOLERANCE = 0.05


@dataclass(frozen=True)
class TimingSummary:
    """Zusammenfassung der Timing-Genauigkeit, skaliert in ``unit``."""

    samples: int
    average_error: float
    average_compensation: float
    max_error: float
    min_error: float
    tolerance_exceeded: int
    unit: TimeUnit

    @property
    def unit_name(self) -> str:
        return self.unit.display_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "samples": self.samples,
            "average_error": self.average_error,
            "average_compensation": self.average_compensation,
            "max_error": self.max_error,
            "min_error": self.min_error,
            "tolerance_exceeded": self.tolerance_exceeded,
            "unit": self.unit_name,
        }


class StatisticsCollector:
    """Akkumuliert Zyklus-Fehler und Kompensation eines TimedTask."""

    def __init__(self, tolerance: float = DEFAULT_TOLERANCE) -> None:
        if tolerance <= 0:
            raise ConfigError(
                "tolerance must be > 0",
                error_code="CONFIG_INVALID_TOLERANCE",
                details={"tolerance": tolerance},
            )
        self._tolerance_factor = 1.0 + tolerance
        self._lock = threading.Lock()
        self._reset_unlocked()

    def _reset_unlocked(self) -> None:
        self._samples = 0
        self._error_total = 0
        self._compensation_total = 0
        self._max_error = 0
        self._min_error = UINT64_MAX
        self._tolerance_exceeded = 0

    # ------------------------------------------------------------------
    # Erfassung
    # ------------------------------------------------------------------

    def record_cycle(self, start_ns: int, end_ns: int, expected_ns: int) -> int:
        """Erfasst einen Zyklus und gibt dessen Fehler in ns zurück.

        Über- und Unterschreitung zählen beide als Fehler, daher abs().
        """
        actual = end_ns - start_ns
        error = abs(actual - expected_ns)
        with self._lock:
            self._samples += 1
            self._error_total += error
            self._max_error = max(self._max_error, error)
            self._min_error = min(self._min_error, error)
            if actual > expected_ns * self._tolerance_factor:
                self._tolerance_exceeded += 1
        return error

    def record_compensation(self, amount_ns: int) -> None:
        """Addiert eine Schlafzeit (ns) zur Kompensations-Summe."""
        with self._lock:
            self._compensation_total += max(0, int(amount_ns))

    def reset(self) -> None:
        with self._lock:
            self._reset_unlocked()

    # ------------------------------------------------------------------
    # Auswertung
    # ------------------------------------------------------------------

    def summarize(self, unit: TimeUnit = TimeUnit.NANOSECONDS) -> TimingSummary | None:
        """Zusammenfassung in ``unit``. None, solange keine Samples vorliegen."""
        unit = TimeUnit.parse(unit)
        with self._lock:
            if self._samples == 0:
                return None
            return TimingSummary(
                samples=self._samples,
                average_error=unit.from_ns(self._error_total / self._samples),
                average_compensation=unit.from_ns(self._compensation_total / self._samples),
                max_error=unit.from_ns(self._max_error),
                min_error=unit.from_ns(self._min_error),
                tolerance_exceeded=self._tolerance_exceeded,
                unit=unit,
            )

    @property
    def sample_count(self) -> int:
        return self._samples

    @property
    def error_total_ns(self) -> int:
        return self._error_total

    @property
    def compensation_total_ns(self) -> int:
        return self._compensation_total

    @property
    def max_error_ns(self) -> int:
        return self._max_error

    @property
    def min_error_ns(self) -> int:
        return self._min_error

    @property
    def tolerance_exceeded_count(self) -> int:
        return self._tolerance_exceeded
