"""Wait strategies for the retry loops.

The executor never sleeps directly; it awaits a strategy so tests can run
the retry state machines without real delays.
"""

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class FixedDelay:
    """Wait the same number of seconds before every retry."""

    def __init__(
        self,
        seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.seconds = seconds
        self._sleep = sleep

    async def wait(self, attempt: int) -> None:
        """Wait before retry number ``attempt`` (0-based)."""
        if self.seconds > 0:
            logger.debug(f"Waiting {self.seconds}s (retry {attempt + 1})")
            await self._sleep(self.seconds)

    def __str__(self) -> str:
        return f"{self.seconds:g}s"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(seconds={self.seconds})"
