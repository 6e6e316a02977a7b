"""Abstract store interface for the dismissal ledger.

The ledger is a flat set of issue identity keys (``filename:id:title``).
Backends load it once at startup and rewrite it on every mutation. The core
depends only on the load/save pair and never on a concrete backend, so the
storage medium is swappable without touching core code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class StoreError(Exception):
    """A backend could not read or write the dismissed-key set."""


class BaseStore(ABC):
    """Pluggable persistence for dismissed issue keys.

    Implementations raise StoreError on I/O failure. The ledger decides what
    to do with it (warn, keep the in-memory state); backends do not swallow
    errors themselves.
    """

    @abstractmethod
    def load_dismissed(self) -> set[str]:
        """Return every persisted key. An empty store returns an empty set."""

    @abstractmethod
    def save_dismissed(self, keys: set[str]) -> None:
        """Replace the persisted set with ``keys``."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """
