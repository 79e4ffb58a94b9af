"""JSONL event logging for model calls, tasks and planning phases.

Each line is one event. Empty fields are dropped; anything beyond the
fixed columns goes under "extra". When the active file grows past the
size limit it is renamed with a timestamp suffix and only the newest
`keep_rotated` archives are kept.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """One event line."""

    timestamp: str
    event: str
    project_id: str | None = None
    task_type: str | None = None
    provider: str | None = None
    model: str | None = None
    phase: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v not in (None, {}, [])}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JSONLLogger:
    """Appends structured events to a size-rotated JSONL file."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "events.jsonl",
        max_size_mb: float = 10.0,
        keep_rotated: int = 5,
    ) -> None:
        self.log_dir = Path(log_dir) if log_dir is not None else Path.home() / ".inkwell" / "logs"
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self.keep_rotated = keep_rotated
        self._project_id: str | None = None

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.filename

    def set_project_id(self, project_id: str | None) -> None:
        """Default project_id for events that don't name one."""
        self._project_id = project_id

    def rotated_files(self) -> list[Path]:
        """Archived log files, oldest first."""
        stem = Path(self.filename).stem
        return sorted(self.log_dir.glob(f"{stem}_*.jsonl"))

    def _rotate(self) -> None:
        path = self.log_path
        if not path.exists() or path.stat().st_size < self.max_size_bytes:
            return

        suffix = _utc_now().strftime("%Y%m%d_%H%M%S_%f")
        path.rename(self.log_dir / f"{path.stem}_{suffix}.jsonl")

        archives = self.rotated_files()
        for stale in archives[: max(len(archives) - self.keep_rotated, 0)]:
            stale.unlink(missing_ok=True)

    def _append(self, entry: LogEntry) -> None:
        self._rotate()
        line = json.dumps(entry.to_dict(), ensure_ascii=False)
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def log(
        self,
        event: str,
        *,
        project_id: str | None = None,
        task_type: str | None = None,
        provider: str | None = None,
        model: str | None = None,
        phase: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Record one event. Unknown keyword arguments land in "extra"."""
        self._append(
            LogEntry(
                timestamp=_utc_now().isoformat(),
                event=event,
                project_id=project_id or self._project_id,
                task_type=task_type,
                provider=provider,
                model=model,
                phase=phase,
                duration_ms=round(duration_ms, 2) if duration_ms is not None else None,
                error=error,
                extra=dict(extra),
            )
        )

    def log_llm_call(
        self,
        provider: str,
        model: str,
        *,
        duration_ms: float | None = None,
        streamed: bool = False,
        error: str | None = None,
    ) -> None:
        """Log a completed or failed model call."""
        self.log(
            "llm_call",
            provider=provider,
            model=model,
            duration_ms=duration_ms,
            error=error,
            success=error is None,
            streamed=streamed,
        )

    def log_task(
        self,
        task_type: str,
        *,
        project_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log a coordinator task."""
        self.log(
            "task",
            project_id=project_id,
            task_type=task_type,
            duration_ms=duration_ms,
            error=error,
            success=error is None,
        )

    def log_phase(
        self,
        phase: str,
        *,
        project_id: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
    ) -> None:
        """Log a planning phase."""
        self.log(
            "planning_phase",
            project_id=project_id,
            phase=phase,
            duration_ms=duration_ms,
            error=error,
        )

    def log_context(
        self,
        task_type: str,
        *,
        project_id: str | None = None,
        facts: int = 0,
        characters: int = 0,
    ) -> None:
        """Log the size of a context bundle handed to an agent."""
        self.log(
            "context",
            project_id=project_id,
            task_type=task_type,
            facts=facts,
            characters=characters,
        )


_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Process-wide event logger, created under ~/.inkwell/logs on first use."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(
    log_dir: str | Path | None = None,
    max_size_mb: float = 10.0,
    keep_rotated: int = 5,
) -> JSONLLogger:
    """Replace the process-wide event logger, e.g. with the configured log_dir."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb, keep_rotated=keep_rotated)
    return _logger


def reset_logger() -> None:
    """Drop the process-wide logger (for testing)."""
    global _logger
    _logger = None
