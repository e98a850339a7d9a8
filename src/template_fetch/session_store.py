"""On-disk snapshot of the authenticated browser storage state."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from template_fetch.constants import SITE_KEY

logger = logging.getLogger(__name__)


class SessionStore:
    """One storage-state file per deployment.

    ``site`` is accepted for logging only: every site shares the same file,
    so pointing the fetcher at a second site would overwrite the snapshot.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self, site: str) -> dict[str, Any] | None:
        try:
            if not self.path.exists():
                return None
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("ignoring unreadable session snapshot %s for %s: %s", self.path, site, exc)
            return None
        if not _looks_like_storage_state(payload):
            logger.warning("ignoring malformed session snapshot %s for %s", self.path, site)
            return None
        logger.debug("loaded session snapshot for %s (%d cookies)", site, len(payload["cookies"]))
        return payload

    def save(self, site: str, snapshot: dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as fh:
                json.dump(snapshot, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp, self.path)
        except Exception as exc:
            logger.warning("could not save session snapshot for %s: %s", site, exc)
            try:
                tmp.unlink()
            except OSError:
                pass
            return
        logger.info("saved session snapshot for %s", site)

    def clear(self) -> bool:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def describe(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"path": str(self.path), "present": False}
        snapshot = self.load(SITE_KEY)
        modified = datetime.fromtimestamp(self.path.stat().st_mtime, tz=timezone.utc).isoformat()
        return {
            "path": str(self.path),
            "present": True,
            "valid": snapshot is not None,
            "cookies": len(snapshot["cookies"]) if snapshot else 0,
            "origins": len(snapshot.get("origins", []) or []) if snapshot else 0,
            "updated_at_utc": modified,
        }


def _looks_like_storage_state(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if not isinstance(payload.get("cookies"), list):
        return False
    origins = payload.get("origins", [])
    return isinstance(origins, list)
