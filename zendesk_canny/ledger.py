from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from .errors import LedgerError

logger = logging.getLogger(__name__)

POST = "post"
COMMENT = "comment"
VOTE = "vote"

# Votes have no Canny id; this marks them as created.
VOTE_CREATED = "s"


def format_key(kind: str, record_id: int) -> str:
    return f"{kind}_{record_id}"


class MigrationLedger:
    """
    Persisted record of what has already been created in Canny.

    Shape on disk:

    {
        "<zendesk topic>": {
            "post_123": "<canny post id>",
            "comment_456": "<canny comment id>",
            "vote_789": "s"
        }
    }

    Once a key is present, the record is considered migrated and is never
    created again. This file is the only source of truth for that: nothing
    is re-derived from Canny.
    """

    def __init__(self, path: Optional[Path] = None, state: Optional[Dict[str, Dict[str, str]]] = None) -> None:
        self.path = path
        self._state: Dict[str, Dict[str, str]] = state if state is not None else {}

    # ---------- persistence ----------

    @classmethod
    def load(cls, path: Path) -> "MigrationLedger":
        """
        Load the ledger from path. A missing file is an empty ledger; a file
        that cannot be decoded is an error, since starting empty would
        duplicate everything already created.
        """
        if not path.exists():
            logger.info("State file %s not found, starting with an empty ledger", path)
            return cls(path)

        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            raise LedgerError(f"cannot load state file {path}: {exc}") from exc

        if not isinstance(raw, dict) or not all(isinstance(v, dict) for v in raw.values()):
            raise LedgerError(f"state file {path} does not contain a topic -> records mapping")

        state = {
            str(topic): {str(k): str(v) for k, v in records.items()}
            for topic, records in raw.items()
        }
        ledger = cls(path, state)
        logger.info("Loaded state for %d topics (%d records) from %s", len(state), len(ledger), path)
        return ledger

    def save(self, path: Optional[Path] = None) -> None:
        """
        Rewrite the whole ledger. The file is replaced atomically so a crash
        mid-write leaves the previous version intact.
        """
        target = path or self.path
        if target is None:
            raise LedgerError("no state file configured")

        tmp = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, ensure_ascii=False, indent=1)
            os.replace(tmp, target)
        except OSError as exc:
            raise LedgerError(f"cannot save state file {target}: {exc}") from exc
        logger.debug("Saved state (%d records) to %s", len(self), target)

    def dumps(self) -> str:
        """JSON text of the in-memory ledger, for hand-merging after a failed save."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=1)

    # ---------- lookups ----------

    def get(self, topic: str, kind: str, record_id: int) -> Optional[str]:
        records = self._state.get(topic)
        if not records:
            return None
        return records.get(format_key(kind, record_id)) or None

    def put(self, topic: str, kind: str, record_id: int, destination_id: str) -> None:
        self._state.setdefault(topic, {})[format_key(kind, record_id)] = destination_id

    def topic(self, topic: str) -> Dict[str, str]:
        return dict(self._state.get(topic, {}))

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {topic: dict(records) for topic, records in self._state.items()}

    def __len__(self) -> int:
        return sum(len(records) for records in self._state.values())
