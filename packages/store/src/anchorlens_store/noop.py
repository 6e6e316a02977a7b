"""No-op store — dismissals last for the current session only.

Using a NoOpStore rather than None lets callers always hand the ledger a
backend without conditional checks.
"""

from __future__ import annotations

from anchorlens_store.base import BaseStore


class NoOpStore(BaseStore):
    """Loads nothing and silently discards every save."""

    def load_dismissed(self) -> set[str]:
        return set()

    def save_dismissed(self, keys: set[str]) -> None:
        pass  # intentional no-op
