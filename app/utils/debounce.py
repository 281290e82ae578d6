"""
Debounce helper for live preview requests
"""

from typing import Dict
import asyncio

class Debouncer:
    """
    Trailing-edge debounce keyed by caller

    Each call waits out the window. Only the newest call for a key is told
    to proceed; earlier calls still waiting when it arrived are superseded.
    State is per process.
    """

    def __init__(self, window_ms: int):
        self.window = max(window_ms, 0) / 1000
        self._generations: Dict[str, int] = {}

    async def settle(self, key: str) -> bool:
        """
        Wait for the window to pass

        Args:
            key: Debounce scope, one per shop

        Returns:
            True if no newer call for the key arrived meanwhile
        """
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        if self.window:
            await asyncio.sleep(self.window)

        if self._generations.get(key) != generation:
            return False

        del self._generations[key]
        return True
