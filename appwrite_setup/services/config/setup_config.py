from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, Optional


class PropagationStrategy(str, Enum):
    FIXED = "fixed"
    POLL = "poll"
    NONE = "none"


@dataclass(frozen=True)
class SetupConfig:
    """Configuration for a schema setup run.

    This is run wiring (wait strategy, plan source, progress output), not part of the
    schema plan itself.
    """

    _DEFAULT_DELAY_SECONDS: ClassVar[float] = 3.0
    _DEFAULT_POLL_INTERVAL_SECONDS: ClassVar[float] = 1.0
    _DEFAULT_TIMEOUT_SECONDS: ClassVar[float] = 60.0

    propagation_strategy: PropagationStrategy = PropagationStrategy.FIXED
    propagation_delay_seconds: float = _DEFAULT_DELAY_SECONDS
    poll_interval_seconds: float = _DEFAULT_POLL_INTERVAL_SECONDS
    propagation_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    schema_plan_path: Optional[Path] = None
    show_progress: bool = True

    @staticmethod
    def _seconds_from_env(name: str, default: float) -> float:
        raw = os.getenv(name)
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid {name}; must be a number") from exc
        if value < 0:
            raise ValueError(f"Invalid {name}; must not be negative")
        return value

    @staticmethod
    def from_env() -> "SetupConfig":
        strategy_raw = (os.getenv("APPWRITE_PROPAGATION_STRATEGY") or "").strip().lower()
        try:
            strategy = PropagationStrategy(strategy_raw) if strategy_raw else PropagationStrategy.FIXED
        except ValueError as exc:
            choices = ", ".join(s.value for s in PropagationStrategy)
            raise ValueError(f"Invalid APPWRITE_PROPAGATION_STRATEGY; expected one of: {choices}") from exc

        plan_raw = (os.getenv("APPWRITE_SCHEMA_PLAN_PATH") or "").strip()
        progress_raw = (os.getenv("APPWRITE_SETUP_PROGRESS") or "").strip().lower()

        return SetupConfig(
            propagation_strategy=strategy,
            propagation_delay_seconds=SetupConfig._seconds_from_env(
                "APPWRITE_PROPAGATION_DELAY_SECONDS", SetupConfig._DEFAULT_DELAY_SECONDS
            ),
            poll_interval_seconds=SetupConfig._seconds_from_env(
                "APPWRITE_PROPAGATION_POLL_INTERVAL_SECONDS", SetupConfig._DEFAULT_POLL_INTERVAL_SECONDS
            ),
            propagation_timeout_seconds=SetupConfig._seconds_from_env(
                "APPWRITE_PROPAGATION_TIMEOUT_SECONDS", SetupConfig._DEFAULT_TIMEOUT_SECONDS
            ),
            schema_plan_path=Path(plan_raw) if plan_raw else None,
            show_progress=progress_raw not in {"0", "false", "no", "off"},
        )
