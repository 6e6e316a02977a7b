"""Dismissal ledger — the persisted set of issues the user marked as fixed.

The ledger is keyed by identity (``filename:id:title``), not by review, so a
dismissal outlives the review it was made in. Both presentation surfaces
read and write through one ledger instance; keeping a private dismissed-set
per surface is how dismissals from one surface used to go missing from the
other.

Persistence is write-through: every mutation rewrites the whole key set to
the backend. A failed write is reported (log warning + ``False`` return) but
never raised. The in-memory set stays authoritative for the rest of the
session, so dismissals keep working until restart.

The backend is any object with ``load_dismissed() -> set[str]`` and
``save_dismissed(keys: set[str]) -> None``, in practice one of the
anchorlens_store backends. The core does not import them.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from anchorlens_core.models import Issue

logger = logging.getLogger(__name__)

LedgerListener = Callable[[], None]


def _as_key(key_or_issue: str | Issue) -> str:
    if isinstance(key_or_issue, Issue):
        return key_or_issue.key
    return key_or_issue


class DismissalLedger:
    def __init__(self, backend=None):
        self._backend = backend
        self._lock = threading.Lock()
        self._listeners: list[LedgerListener] = []
        self.last_error: str | None = None
        self._keys: set[str] = self._load()

    def _load(self) -> set[str]:
        if self._backend is None:
            return set()
        try:
            keys = set(self._backend.load_dismissed())
        except Exception as e:
            logger.warning("Could not load dismissed issues (%s): %s", type(e).__name__, e)
            self.last_error = str(e)
            return set()
        logger.debug("Loaded %d dismissed issue key(s)", len(keys))
        return keys

    def _persist(self) -> bool:
        # Caller holds self._lock.
        if self._backend is None:
            return True
        try:
            self._backend.save_dismissed(set(self._keys))
        except Exception as e:
            # In-memory state stays authoritative; the next successful write
            # carries this change too.
            logger.warning("Could not persist dismissed issues (%s): %s", type(e).__name__, e)
            self.last_error = str(e)
            return False
        self.last_error = None
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Dismissal listener failed")

    def subscribe(self, listener: LedgerListener) -> None:
        """Call ``listener`` after every dismiss / restore."""
        self._listeners.append(listener)

    def dismiss(self, key_or_issue: str | Issue) -> bool:
        """Mark an issue as dismissed. Idempotent.

        Returns False when the write-through to the backend failed.
        """
        key = _as_key(key_or_issue)
        with self._lock:
            self._keys.add(key)
            persisted = self._persist()
        logger.info("Dismissed issue %s", key)
        self._notify()
        return persisted

    def restore_all(self) -> bool:
        """Forget every dismissal. Returns False when the write-through failed."""
        with self._lock:
            count = len(self._keys)
            self._keys.clear()
            persisted = self._persist()
        logger.info("Restored %d dismissed issue(s)", count)
        self._notify()
        return persisted

    def is_dismissed(self, key_or_issue: str | Issue) -> bool:
        key = _as_key(key_or_issue)
        with self._lock:
            return key in self._keys

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._keys)

    def __contains__(self, key_or_issue) -> bool:
        return self.is_dismissed(key_or_issue)

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)
