from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RuntimeState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class RuntimeStateTracker:
    state: RuntimeState = RuntimeState.STOPPED
    last_error: str | None = None

    @property
    def active(self) -> bool:
        return self.state in (RuntimeState.STARTING, RuntimeState.RUNNING, RuntimeState.STOPPING)

    def set_starting(self) -> None:
        self.state = RuntimeState.STARTING

    def set_running(self) -> None:
        if self.state == RuntimeState.STARTING:
            self.state = RuntimeState.RUNNING

    def set_stopping(self) -> None:
        if self.state in (RuntimeState.RUNNING, RuntimeState.STARTING):
            self.state = RuntimeState.STOPPING

    def set_stopped(self) -> None:
        self.state = RuntimeState.STOPPED

    def set_error(self, detail: str) -> None:
        self.state = RuntimeState.ERROR
        self.last_error = detail
