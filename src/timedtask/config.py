"""
timedtask · Konfiguration.

Lädt die Konfiguration aus:
  1. Defaults (hier definiert)
  2. einer YAML-Datei (überschreibt Defaults)
  3. Umgebungsvariablen TIMEDTASK_* (überschreiben alles)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from timedtask.errors import ConfigError
from timedtask.units import TimeUnit
from timedtask.utils.logging import setup_logging

log = logging.getLogger(__name__)

ENV_PREFIX = "TIMEDTASK_"


class LoggingConfig(BaseModel):
    """Logging-Konfiguration."""

    level: str = "INFO"
    json_logs: bool = False
    console: bool = True
    log_dir: Path | None = None

    def apply(self) -> None:
        """Konfiguriert structlog und die stdlib-Handler mit diesen Werten."""
        setup_logging(
            level=self.level,
            log_dir=self.log_dir,
            json_logs=self.json_logs,
            console=self.console,
        )


class TimedTaskConfig(BaseModel):
    """Takt und Statistik-Einstellungen eines TimedTask."""

    name: str = "timed-task"
    rate: int = Field(default=0, ge=0)
    unit: TimeUnit = TimeUnit.MILLISECONDS
    collect_statistics: bool = True
    # Offset für Signal-/Wait-Overhead, plattformabhängig
    overhead_offset_us: int = Field(default=50, ge=0)
    report_unit: TimeUnit = TimeUnit.MILLISECONDS
    tolerance: float = Field(default=0.05, gt=0.0, le=1.0)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("unit", "report_unit", mode="before")
    @classmethod
    def _parse_unit(cls, value: Any) -> TimeUnit:
        try:
            return TimeUnit.parse(value)
        except ConfigError as exc:
            raise ValueError(str(exc)) from exc

    @property
    def period_ns(self) -> int:
        return self.unit.to_ns(self.rate)


# ============================================================================
# Config-Laden
# ============================================================================


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Wendet TIMEDTASK_* Umgebungsvariablen an.

    Konvention: TIMEDTASK_SECTION_KEY → data["section"]["key"], sofern
    "section" ein bekannter Abschnitt ist, sonst TIMEDTASK_KEY → data["key"].
    Beispiel: TIMEDTASK_LOGGING_LEVEL → data["logging"]["level"]
    """
    sections = {"logging"}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX):].lower().split("_")
        if len(parts) >= 2 and parts[0] in sections:
            node = data.setdefault(parts[0], {})
            if isinstance(node, dict):
                node["_".join(parts[1:])] = value
        elif parts and parts[0]:
            data["_".join(parts)] = value
    return data


def load_config(config_path: Path | None = None) -> TimedTaskConfig:
    """Lädt die Konfiguration.

    Reihenfolge (spätere überschreiben frühere):
      1. Defaults (in den Pydantic-Modellen)
      2. YAML-Datei (wenn vorhanden)
      3. TIMEDTASK_* Umgebungsvariablen

    Args:
        config_path: Pfad zur YAML-Datei. None = nur Defaults + Env.

    Returns:
        Vollständig validierte TimedTaskConfig.

    Raises:
        ConfigError: Wenn die Werte die Validierung nicht bestehen.
    """
    data: dict[str, Any] = {}

    if config_path is not None and config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            if isinstance(file_data, dict):
                data = file_data
        except yaml.YAMLError as exc:
            log.warning("Fehlerhafte Konfigurationsdatei wird ignoriert: %s", exc)

    data = _apply_env_overrides(data)

    try:
        return TimedTaskConfig(**data)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid timedtask configuration: {exc.error_count()} error(s)",
            error_code="CONFIG_INVALID",
            details={"errors": exc.errors(include_url=False)},
        ) from exc
