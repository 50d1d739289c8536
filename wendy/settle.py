"""Settle-once result cell shared by racing completion paths."""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class SettleOnce:
    """A result that can be set exactly once; the first writer wins.

    Later writers get False back and are logged, never raised. Must be
    created inside a running event loop.
    """

    def __init__(self, label: str):
        self.label = label
        self._future: asyncio.Future = asyncio.get_running_loop().create_future()

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, value: Any, source: str = "") -> bool:
        if self._future.done():
            logger.debug("%s already resolved, ignoring %s", self.label, source or "late result")
            return False
        self._future.set_result(value)
        return True

    def result(self) -> Any:
        return self._future.result()

    async def wait(self) -> Any:
        # shield so a timed-out waiter does not cancel the cell itself
        return await asyncio.shield(self._future)
