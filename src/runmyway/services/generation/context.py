"""Request-scoped generation context."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from ...models.domain import SearchAttempt

AttemptListener = Callable[[SearchAttempt], None]

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GenerationContext:
    """State owned by a single generation request.

    ``rng`` only needs a ``random()`` method returning floats in [0, 1), so tests
    can pass a fixed stub instead of a numpy generator.
    """

    rng: Any
    seed: Optional[int] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    listeners: list[AttemptListener] = field(default_factory=list)

    @classmethod
    def create(cls, seed: int | None = None) -> "GenerationContext":
        return cls(rng=np.random.default_rng(seed), seed=seed)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def subscribe(self, listener: AttemptListener) -> None:
        self.listeners.append(listener)

    def emit(self, attempt: SearchAttempt) -> None:
        for listener in list(self.listeners):
            try:
                listener(attempt)
            except Exception as exc:
                logger.warning(f"Attempt listener {listener!r} failed: {exc}")
