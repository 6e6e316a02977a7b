"""GistStore — dismissal ledger shared through a GitHub Gist.

Why a Gist for dismissals:
- Several machines (or a whole team) working on one repository see the same
  "marked as fixed" state without running any server.
- Access control is GitHub's: whoever can read the Gist sees the ledger.
- The payload is tiny: a JSON array of identity keys.

Data format: a single JSON file named `anchorlens_dismissed.json` inside the
Gist, containing a sorted JSON array of ``filename:id:title`` strings.
"""

from __future__ import annotations

import json
import logging

from anchorlens_store.base import BaseStore, StoreError

logger = logging.getLogger(__name__)

_GIST_FILENAME = "anchorlens_dismissed.json"


class GistStore(BaseStore):
    """Stores the dismissed-key set in a GitHub Gist file.

    Every save rewrites the whole file. The Gist ID is stored in
    .anchorlens.yml under `gist_id`.
    """

    def __init__(self, gist_id: str, token: str):
        from github import Github

        self._gist_id = gist_id
        self._gh = Github(token)

    def load_dismissed(self) -> set[str]:
        try:
            gist = self._gh.get_gist(self._gist_id)
        except Exception as e:
            raise StoreError(f"Could not fetch gist {self._gist_id} ({type(e).__name__}: {e})") from e
        return set(self._read_keys(gist))

    def save_dismissed(self, keys: set[str]) -> None:
        try:
            content = json.dumps(sorted(keys), indent=2)
            self._gh.get_gist(self._gist_id).edit(files={_GIST_FILENAME: {"content": content}})
        except Exception as e:
            raise StoreError(f"Could not update gist {self._gist_id} ({type(e).__name__}: {e})") from e
        logger.debug("Persisted %d dismissed key(s) to gist %s", len(keys), self._gist_id)

    @staticmethod
    def _read_keys(gist) -> list[str]:
        """Read the JSON array from the Gist file, or return []."""
        file_obj = gist.files.get(_GIST_FILENAME)
        if file_obj is None:
            return []
        try:
            data = json.loads(file_obj.content) or []
        except (json.JSONDecodeError, AttributeError, TypeError):
            logger.warning("Ignoring unreadable %s in gist", _GIST_FILENAME)
            return []
        if not isinstance(data, list):
            return []
        return [k for k in data if isinstance(k, str)]
