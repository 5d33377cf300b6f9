"""Orchestrator data models."""
from dataclasses import dataclass
from typing import Awaitable, Callable

from ..models import UploadOutcome


@dataclass(frozen=True)
class UploadTask:
    """Deferred upload of one artifact. Nothing runs until the task is called."""
    name: str
    run: Callable[[], Awaitable[UploadOutcome]]

    def __call__(self) -> Awaitable[UploadOutcome]:
        return self.run()
