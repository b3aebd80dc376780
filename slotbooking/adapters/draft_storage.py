"""
Session-scoped storage for the single pending-booking draft.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..domain.exceptions import DraftCorrupt

logger = logging.getLogger(__name__)

DRAFT_KEY = "pending-booking"


class MemoryDraftStorage:
    """Draft storage living as long as the process (one session)."""

    def __init__(self) -> None:
        self._raw: Optional[str] = None

    def save(self, raw: str) -> None:
        self._raw = raw

    def load(self) -> Optional[str]:
        return self._raw

    def clear(self) -> None:
        self._raw = None


class FileDraftStorage:
    """
    Draft storage in a per-session directory.

    The draft lives in ``<session_dir>/pending-booking.json``; there is only
    ever one file, so a new draft replaces the previous one.
    """

    def __init__(self, session_dir: Path):
        self.path = session_dir / f"{DRAFT_KEY}.json"

    def save(self, raw: str) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as file_handle:
                file_handle.write(raw)
            self.path.chmod(0o600)
        except OSError as exc:
            logger.warning("Could not save pending booking to %s: %s", self.path, exc)

    def load(self) -> Optional[str]:
        """
        Return the stored draft text.

        Raises:
            DraftCorrupt: If the file is not valid UTF-8
        """
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as file_handle:
                return file_handle.read()
        except UnicodeDecodeError as exc:
            raise DraftCorrupt(f"draft file {self.path} is not valid UTF-8") from exc
        except OSError as exc:
            logger.warning("Could not load pending booking file %s: %s", self.path, exc)
            return None

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove pending booking file %s: %s", self.path, exc)
