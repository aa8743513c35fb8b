"""Error kinds raised by the forecasting pipeline.

Every error is terminal for a run. Each carries the stage that raised it
and, where known, the offending row or date range so the failure can be
traced back to the input data.
"""

from typing import Any, Optional, Tuple


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, stage: Optional[str] = None,
                 rows: Optional[Tuple[Any, Any]] = None):
        self.message = message
        self.stage = stage
        self.rows = rows
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.stage:
            parts.append(f"[{self.stage}]")
        parts.append(self.message)
        if self.rows is not None:
            start, end = self.rows
            parts.append(f"(rows {start} .. {end})")
        return " ".join(parts)


class DataLoadError(PipelineError):
    """Input file missing, unreadable or lacking required columns."""


class DomainError(PipelineError):
    """Value outside the valid domain of a transform."""


class InsufficientDataError(PipelineError):
    """Not enough history for the configured lag, rolling or assessment windows."""


class LeakageError(PipelineError):
    """A feature row references data later than its own date."""
