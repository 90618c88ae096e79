"""Per-stage processing result used by the pipeline orchestrator."""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATUSES = frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED, ProcessingStatus.SKIPPED})


@dataclass
class ProcessingResult:
    status: ProcessingStatus = ProcessingStatus.PENDING
    data: Any = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time_ms: float = 0.0

    def start(self) -> "ProcessingResult":
        self.status = ProcessingStatus.PROCESSING
        return self

    def set_success(self, data: Any, metadata: dict | None = None) -> "ProcessingResult":
        self.status = ProcessingStatus.COMPLETED
        self.data = data
        self.metadata.update(metadata or {})
        return self

    def set_error(self, error: str, metadata: dict | None = None) -> "ProcessingResult":
        self.status = ProcessingStatus.FAILED
        self.errors.append(error)
        self.metadata.update(metadata or {})
        return self

    def set_skipped(self, reason: str) -> "ProcessingResult":
        self.status = ProcessingStatus.SKIPPED
        self.warnings.append(reason)
        return self

    def add_warning(self, warning: str) -> "ProcessingResult":
        self.warnings.append(warning)
        return self

    def set_processing_time(self, started: float) -> "ProcessingResult":
        """`started` is a time.monotonic() reading."""
        self.processing_time_ms = round((time.monotonic() - started) * 1000, 2)
        return self

    @property
    def is_success(self) -> bool:
        return self.status == ProcessingStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == ProcessingStatus.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "metadata": {k: v for k, v in self.metadata.items() if isinstance(v, (str, int, float, bool, list, dict))},
            "processing_time_ms": self.processing_time_ms,
        }
