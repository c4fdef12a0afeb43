from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol


class RunLock(Protocol):
    """Mutual exclusion for externally triggered runs (overlapping cron ticks).

    ``hold()`` raises ``ConflictError`` when another run owns the lock.
    """

    def hold(self) -> AbstractAsyncContextManager[None]: ...
