"""Append-only backup log for emails that could not be stored."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import ValidationError

from src.schemas.webhook import EmailLogEntry

logger = logging.getLogger(__name__)


class EmailLog:
    """Newline-delimited JSON file, one complete record per line.

    Each append writes a whole line in a single call, so concurrent writers
    may interleave lines but never split one.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def append(self, email: str, event_type: str, is_pro: bool = True) -> EmailLogEntry:
        """Append one record and return it."""
        entry = EmailLogEntry(
            email=email,
            event_type=event_type,
            timestamp=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            is_pro=is_pro,
        )
        line = entry.model_dump_json(by_alias=True) + "\n"
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line)
        logger.info(f"Email logged to file: {email} ({event_type})")
        return entry

    def read(self) -> list[EmailLogEntry] | None:
        """Read all records, or None if nothing has been logged yet.

        Lines are parsed independently; unreadable lines are skipped.
        """
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            return None

        entries = []
        for line_number, raw in enumerate(content.splitlines(), start=1):
            if not raw.strip():
                continue
            try:
                line = raw.decode("utf-8")
                entries.append(EmailLogEntry.model_validate(json.loads(line)))
            except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
                logger.warning(f"Skipping malformed line {line_number} in {self.path}: {e}")
        return entries
