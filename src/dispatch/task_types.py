"""Typed completion payloads for dispatched tasks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class TaskCompletion:
    """Outcome of one dispatched task.

    Attributes:
        task_id: Dispatcher-assigned sequence number, increasing per submission.
        operation: Operation label given at submission.
        generation: Caller generation token active when the task was submitted.
        value: Result value when the task succeeded.
        error: Raised exception when the task failed.
    """

    task_id: int
    operation: str
    generation: int
    value: object | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """Return whether the task finished without an error."""
        return self.error is None

    def unwrap(self) -> object | None:
        """Return the value, re-raising the task error if one occurred."""
        if self.error is not None:
            raise self.error
        return self.value


CompletionListener = Callable[[TaskCompletion], None]
