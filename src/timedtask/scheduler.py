"""TimedTask: selbstkorrigierender periodischer Task-Runner.

Führt eine Aktion in festem Takt auf einem eigenen Hintergrund-Thread aus:
  - Ausführungszeit der Aktion wird von der nächsten Schlafzeit abgezogen
  - Überlauf (Aktion länger als Periode) wird nur für den aktuellen
    Zyklus kompensiert, verpasste Perioden werden nicht nachgeholt
  - Ein fester Overhead-Offset (Default 50 µs) wird vorab abgezogen
  - Schlafen ist abbrechbar: stop() weckt den Thread sofort

Zustände::

    STOPPED --start--> RUNNING --stop()--> STOPPING --join--> STOPPED

Usage:
    with TimedTask(poll_sensor, 50, TimeUnit.MILLISECONDS) as task:
        ...
    # Beim Verlassen: stop(), join, Report (falls Statistik aktiv)
"""

from __future__ import annotations

import threading
import time
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from timedtask.errors import ConfigError, SchedulerError
from timedtask.report import ConsoleReporter
from timedtask.statistics import DEFAULT_TOLERANCE, StatisticsCollector
from timedtask.units import TimeUnit, period_ns
from timedtask.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from timedtask.config import TimedTaskConfig
    from timedtask.report import Reporter

log = get_logger(__name__)

DEFAULT_OVERHEAD_OFFSET_NS = 50_000


class SchedulerState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


def compute_sleep_ns(period: int, elapsed: int, offset: int = DEFAULT_OVERHEAD_OFFSET_NS) -> int:
    """Schlafzeit für den nächsten Zyklus in ns (kann negativ sein).

    Läuft die Aktion über, zählt nur der Überlauf im aktuellen Zyklus:

        --->xxxx------>x----------->xxxx------->
       |-------|-------|-------|-------|-------|

    (x = bereits kompensierte Schlafzeit)
    """
    sleep = period - elapsed
    if sleep < 0:
        sleep = period - (-sleep % period)
    return sleep - offset


@dataclass
class _LoopControl:
    """Zwischen Steuer-Thread und Worker geteilter Zustand (durch cond geschützt)."""

    cond: threading.Condition = field(default_factory=threading.Condition)
    state: SchedulerState = SchedulerState.STOPPED
    cancelled: bool = False
    period_ns: int = 0
    pending_period_ns: int | None = None
    error: Exception | None = None


def _run_loop(
    action: Callable[[], Any],
    control: _LoopControl,
    collector: StatisticsCollector | None,
    offset_ns: int,
    name: str,
) -> None:
    with control.cond:
        period = control.period_ns

    try:
        while True:
            with control.cond:
                if control.cancelled:
                    break
                if control.pending_period_ns is not None:
                    period = control.pending_period_ns
                    control.period_ns = period
                    control.pending_period_ns = None
                    log.info("timed_task_rate_applied", task=name, period_ns=period)
                    if period == 0:
                        control.state = SchedulerState.STOPPED
                        break

            start = time.monotonic_ns()
            action()
            elapsed = time.monotonic_ns() - start

            sleep_ns = compute_sleep_ns(period, elapsed, offset_ns)
            log.debug("timed_task_cycle", task=name, elapsed_ns=elapsed, sleep_ns=sleep_ns)

            with control.cond:
                if control.cond.wait_for(
                    lambda: control.cancelled,
                    timeout=max(0, sleep_ns) / 1e9,
                ):
                    break

            if collector is not None:
                collector.record_cycle(start, time.monotonic_ns(), period)
                collector.record_compensation(sleep_ns)
    except Exception as exc:
        with control.cond:
            control.error = exc
        log.error("timed_task_action_failed", task=name, error=str(exc))
        raise
    finally:
        # Eigenständiges Ende (Fehler, Periode 0): STOPPING gehört stop()
        with control.cond:
            if control.state is SchedulerState.RUNNING:
                control.state = SchedulerState.STOPPED


def _shutdown(control: _LoopControl, thread: threading.Thread) -> None:
    """Signalisiert Abbruch und wartet auf den Worker. Läuft genau einmal."""
    with control.cond:
        control.cancelled = True
        if control.state is SchedulerState.RUNNING:
            control.state = SchedulerState.STOPPING
        control.cond.notify_all()

    # GC kann den Finalizer im Worker selbst auslösen
    if thread is not threading.current_thread():
        thread.join()

    with control.cond:
        control.state = SchedulerState.STOPPED


def _finalize(
    control: _LoopControl,
    thread: threading.Thread,
    collector: StatisticsCollector | None,
    reporter: Reporter,
    report_unit: TimeUnit,
) -> None:
    """Impliziter stop(): beenden, joinen, Statistik melden.

    Wird von stop(), GC und atexit aufgerufen, läuft aber genau einmal.
    """
    _shutdown(control, thread)
    if collector is not None:
        reporter(collector.summarize(report_unit))


class TimedTask:
    """Ruft ``action`` periodisch alle ``rate * unit`` auf.

    Jede Instanz besitzt genau einen Hintergrund-Thread; zwei Zyklen
    derselben Instanz laufen nie parallel. Steuer-Methoden (set_rate, stop)
    sind für einen einzelnen Steuer-Thread gedacht.

    Args:
        action: Callable ohne Argumente, wird einmal pro Zyklus aufgerufen.
        rate: Anzahl Einheiten pro Periode. 0 = Task läuft nicht.
        unit: Zeiteinheit der Periode.
        collect_statistics: Timing-Statistik erfassen und bei stop() melden.
        overhead_offset_ns: Vorab abgezogener Overhead pro Zyklus.
        report_unit: Einheit, in der der Report ausgegeben wird.
        reporter: Empfänger der Zusammenfassung (Default: ConsoleReporter).
        tolerance: Anteil über der Periode, ab dem ein Zyklus als
            Toleranzüberschreitung zählt.
        name: Thread- und Log-Name.
    """

    def __init__(
        self,
        action: Callable[[], Any],
        rate: int,
        unit: TimeUnit | int | str = TimeUnit.MILLISECONDS,
        collect_statistics: bool = True,
        *,
        overhead_offset_ns: int = DEFAULT_OVERHEAD_OFFSET_NS,
        report_unit: TimeUnit | int | str = TimeUnit.MILLISECONDS,
        reporter: Reporter | None = None,
        tolerance: float = DEFAULT_TOLERANCE,
        name: str = "timed-task",
    ) -> None:
        if not callable(action):
            raise TypeError("action must be callable")
        if overhead_offset_ns < 0:
            raise ConfigError(
                "overhead_offset_ns must be >= 0",
                error_code="CONFIG_INVALID_OFFSET",
                details={"overhead_offset_ns": overhead_offset_ns},
            )

        self._period_ns = period_ns(rate, unit)
        self._rate = rate
        self._unit = TimeUnit.parse(unit)
        self._action = action
        self._offset_ns = int(overhead_offset_ns)
        self._report_unit = TimeUnit.parse(report_unit)
        self._collect_statistics = collect_statistics
        self._collector = StatisticsCollector(tolerance)
        self._reporter: Reporter = reporter or ConsoleReporter()
        self._name = name

        self._control = _LoopControl()
        self._thread: threading.Thread | None = None
        self._finalizer: weakref.finalize | None = None

        if self._period_ns > 0:
            self._start()

    @classmethod
    def from_config(
        cls,
        action: Callable[[], Any],
        config: TimedTaskConfig,
        reporter: Reporter | None = None,
        *,
        configure_logging: bool = True,
    ) -> TimedTask:
        """Erzeugt einen Task aus einer validierten TimedTaskConfig.

        Mit ``configure_logging`` wird vorher der ``logging``-Abschnitt
        der Konfiguration angewendet.
        """
        if configure_logging:
            config.logging.apply()
        return cls(
            action,
            config.rate,
            config.unit,
            config.collect_statistics,
            overhead_offset_ns=config.overhead_offset_us * 1_000,
            report_unit=config.report_unit,
            reporter=reporter,
            tolerance=config.tolerance,
            name=config.name,
        )

    # ------------------------------------------------------------------
    # Lebenszyklus
    # ------------------------------------------------------------------

    def _start(self) -> None:
        control = self._control
        with control.cond:
            control.cancelled = False
            control.pending_period_ns = None
            control.period_ns = self._period_ns
            control.error = None
            control.state = SchedulerState.RUNNING

        thread = threading.Thread(
            target=_run_loop,
            args=(
                self._action,
                control,
                self._collector if self._collect_statistics else None,
                self._offset_ns,
                self._name,
            ),
            name=self._name,
            daemon=True,
        )
        self._thread = thread
        # Weder Worker noch Finalizer halten eine Referenz auf self
        self._finalizer = weakref.finalize(
            self,
            _finalize,
            control,
            thread,
            self._collector if self._collect_statistics else None,
            self._reporter,
            self._report_unit,
        )
        thread.start()
        log.info(
            "timed_task_started",
            task=self._name,
            rate=self._rate,
            unit=self._unit.display_name,
            period_ns=self._period_ns,
        )

    def stop(self) -> None:
        """Stoppt den Task, wartet auf den Thread und meldet die Statistik.

        Idempotent: ohne laufenden Thread passiert nichts.
        """
        thread = self._thread
        if thread is None:
            return
        self._check_not_worker("stop")

        finalizer = self._finalizer
        self._thread = None
        self._finalizer = None
        if finalizer is not None:
            finalizer()

        log.info(
            "timed_task_stopped",
            task=self._name,
            samples=self._collector.sample_count,
        )

    def _check_not_worker(self, operation: str) -> None:
        thread = self._thread
        if thread is not None and thread is threading.current_thread():
            raise SchedulerError(
                f"{operation}() called from inside the task's own action",
                error_code="SCHEDULER_SELF_STOP",
                details={"task": self._name, "operation": operation},
            )

    def set_rate(
        self,
        rate: int,
        unit: TimeUnit | int | str,
        immediate: bool = True,
    ) -> None:
        """Ändert den Takt.

        immediate=True: laufenden Zyklus abbrechen und sofort neu starten.
        immediate=False: neuer Takt gilt ab der nächsten Zyklusgrenze,
        d. h. nach Ende der aktuellen Aktion und Wartezeit.
        """
        new_period = period_ns(rate, unit)
        new_unit = TimeUnit.parse(unit)
        if immediate:
            self._check_not_worker("set_rate")
        self._rate = rate
        self._unit = new_unit
        self._period_ns = new_period

        if not immediate:
            thread = self._thread
            control = self._control
            with control.cond:
                if (
                    thread is not None
                    and thread.is_alive()
                    and control.state is SchedulerState.RUNNING
                ):
                    control.pending_period_ns = new_period
                    log.info(
                        "timed_task_rate_deferred",
                        task=self._name,
                        period_ns=new_period,
                    )
                    return

        self.stop()
        if new_period > 0:
            self._start()

    def __enter__(self) -> TimedTask:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    def __copy__(self) -> TimedTask:
        raise SchedulerError("TimedTask cannot be copied", error_code="SCHEDULER_COPY")

    def __deepcopy__(self, memo: dict[int, Any]) -> TimedTask:
        raise SchedulerError("TimedTask cannot be copied", error_code="SCHEDULER_COPY")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        with self._control.cond:
            return self._control.state

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def rate(self) -> int:
        return self._rate

    @property
    def unit(self) -> TimeUnit:
        return self._unit

    @property
    def period_ns(self) -> int:
        return self._period_ns

    @property
    def name(self) -> str:
        return self._name

    @property
    def statistics(self) -> StatisticsCollector:
        return self._collector

    @property
    def last_error(self) -> Exception | None:
        with self._control.cond:
            return self._control.error

    def __repr__(self) -> str:
        return (
            f"TimedTask(name={self._name!r}, rate={self._rate}, "
            f"unit={self._unit.display_name}, state={self.state.value})"
        )
