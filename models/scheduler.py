from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class SchedulerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class SchedulerState:
    status: SchedulerStatus = SchedulerStatus.IDLE
    processed: set[int] = field(default_factory=set)   # item ids with a completed video since last reset
    runs_started: int = 0
    runs_skipped: int = 0                               # triggers dropped by the single-flight guard
    last_run_started_at: datetime | None = None
    last_run_finished_at: datetime | None = None
    last_reset_at: datetime | None = None
