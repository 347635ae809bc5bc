"""Visibility ledger: remembers channels hidden by an unfinished run.

Before a channel is hidden, its previous @everyone view state is recorded
here, and the record is dropped once that state has been restored. If the
process dies in between, the next run finds the channel hidden with a
record still present and restores the recorded state instead of keeping
the channel hidden forever.

Stored as a small JSON object: {"<channel id>": "allowed" | "inherited"}.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

import structlog

from welcomer.core.types import Visibility

logger = structlog.get_logger()


class VisibilityLedger:
    """JSON-backed map of channel id -> visibility before hiding."""

    def __init__(self, path: Path) -> None:
        self._file = path
        self._entries: dict[str, Visibility] = {}
        self._load()

    def _load(self) -> None:
        if not self._file.exists():
            return
        try:
            with open(self._file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("ledger_unreadable", path=str(self._file), error=str(e))
            return

        if not isinstance(data, dict):
            logger.warning("ledger_unreadable", path=str(self._file), error="not an object")
            return

        for channel_id, value in data.items():
            try:
                self._entries[str(channel_id)] = Visibility(value)
            except ValueError:
                logger.warning("ledger_entry_skipped", channel_id=channel_id, value=value)

    def _save(self) -> None:
        self._file.parent.mkdir(parents=True, exist_ok=True)
        data = {channel_id: v.value for channel_id, v in self._entries.items()}

        fd, tmp_path = tempfile.mkstemp(dir=self._file.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self._file)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def recall(self, channel_id: str) -> Visibility | None:
        """Visibility recorded for a channel by an earlier, unfinished run."""
        return self._entries.get(channel_id)

    def record(self, channel_id: str, visibility: Visibility) -> None:
        """Persist the visibility a channel had before we hide it."""
        self._entries[channel_id] = visibility
        self._save()

    def forget(self, channel_id: str) -> None:
        """Drop the record once the channel has been restored."""
        if self._entries.pop(channel_id, None) is not None:
            self._save()

    def __len__(self) -> int:
        return len(self._entries)
