from __future__ import annotations


class RetryTracker:
    """Per-trade attempt counter shared by the poll loop and the executor.

    ``mark_done`` pins a key at the ceiling, after which ``is_exhausted`` stays
    true for the rest of the run and the trade is never touched again.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("retry limit must be at least 1")
        self.limit = limit
        self._attempts: dict[str, int] = {}

    def attempts(self, key: str) -> int:
        return self._attempts.get(key, 0)

    def record_attempt(self, key: str) -> int:
        count = self._attempts.get(key, 0) + 1
        self._attempts[key] = count
        return count

    def mark_done(self, key: str) -> None:
        self._attempts[key] = max(self._attempts.get(key, 0), self.limit)

    def is_exhausted(self, key: str) -> bool:
        return self.attempts(key) >= self.limit
