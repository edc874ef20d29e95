"""
Admission gate bounding concurrently in-flight enhancement runs.
"""

import asyncio
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AdmissionGate:
    """
    Counting gate around ``asyncio.Semaphore``.

    Callers past the cap suspend in ``async with gate:`` until a slot is
    released; wake-up order is whatever the semaphore provides.
    """

    def __init__(self, max_concurrent: int = 2):
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self.max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self.in_flight = 0
        self.peak_in_flight = 0
        self.admitted = 0

    async def acquire(self) -> None:
        if self._semaphore.locked():
            logger.debug(f"Admission gate full ({self.max_concurrent}), waiting for a slot")
        await self._semaphore.acquire()
        self.in_flight += 1
        self.admitted += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def release(self) -> None:
        self.in_flight -= 1
        self._semaphore.release()

    async def __aenter__(self) -> 'AdmissionGate':
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def available(self) -> int:
        return self.max_concurrent - self.in_flight

    def stats(self) -> Dict[str, Any]:
        return {
            'max_concurrent': self.max_concurrent,
            'in_flight': self.in_flight,
            'peak_in_flight': self.peak_in_flight,
            'admitted': self.admitted,
        }
