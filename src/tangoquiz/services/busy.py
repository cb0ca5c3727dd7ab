"""Loading flag that serialises conflicting user actions."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from tangoquiz.errors import BusyError

logger = logging.getLogger(__name__)


class BusyFlag:
    """Single busy/loading flag for one chat.

    It disables triggering a second store round trip while one is pending.
    It is not a lock: a held flag rejects the new action instead of queueing it.
    """

    def __init__(self):
        self._action: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self._action is not None

    @asynccontextmanager
    async def hold(self, action: str) -> AsyncIterator[None]:
        """Hold the flag for the duration of one action."""
        if self._action is not None:
            logger.debug(f"Rejected {action!r} while {self._action!r} is running")
            raise BusyError()
        self._action = action
        try:
            yield
        finally:
            self._action = None
