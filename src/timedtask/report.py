"""Report-Ausgabe der Timing-Statistik (via Rich).

Ein Reporter ist jedes Callable ``(TimingSummary | None) -> None``.
``ConsoleReporter`` gibt den klassischen Text-Report aus; ``None``
(keine Samples) wird als "no data" gemeldet statt durch 0 zu teilen.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from rich.console import Console

if TYPE_CHECKING:
    from timedtask.statistics import TimingSummary

SEPARATOR = "  --------------- // --------------"
NO_DATA = "No samples collected (no data)"


class Reporter(Protocol):
    def __call__(self, summary: TimingSummary | None) -> None: ...


def format_report(summary: TimingSummary | None) -> list[str]:
    """Baut die Report-Zeilen (ohne Markup)."""
    if summary is None:
        return [SEPARATOR, NO_DATA]

    unit = summary.unit_name
    return [
        SEPARATOR,
        f"Samples taken: {summary.samples}",
        f"Deviation average: {summary.average_error:.6f} {unit}",
        f"Compensation average: {summary.average_compensation:.6f} {unit}",
        f"Max variance: {summary.max_error:.6f} {unit}",
        f"Min variance: {summary.min_error:.6f} {unit}",
        f"Tolerance exceeded {summary.tolerance_exceeded} times",
    ]


class ConsoleReporter:
    """Schreibt den Report auf stdout."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(highlight=False)

    def __call__(self, summary: TimingSummary | None) -> None:
        for line in format_report(summary):
            self._console.print(line, markup=False)
