"""Recovery record for array migrations.

Before any volume is detached, the full volumeId:devicePath mapping is
appended to a plain text file. If a move fails halfway, the operator uses the
file to finish the move or put the volumes back by hand. The file is only
ever appended to.
"""

import asyncio
import os
from pathlib import Path

import structlog

from ..models.array import MigrationRecord, RecordEntry
from .exceptions import Ec2RaidError

logger = structlog.get_logger()


class RecoveryRecordError(Ec2RaidError):
    """Recovery record could not be written."""


class RecoveryRecorder:
    """Appends migration mappings to the recovery file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.logger = logger.bind(component="recovery_record", path=str(self.path))

    def _append_lines(self, lines: list[str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            for line in lines:
                f.write(f"{line}\n")
            f.flush()
            os.fsync(f.fileno())

    async def write(
        self, instance_id: str, drive_letter: str, entries: list[RecordEntry]
    ) -> MigrationRecord:
        """Durably append entries and return the record that was written.

        Raises:
            RecoveryRecordError: The file could not be written
        """
        lines = [entry.to_line() for entry in entries]
        try:
            await asyncio.to_thread(self._append_lines, lines)
        except OSError as e:
            self.logger.error("Failed to write recovery record", error=str(e))
            raise RecoveryRecordError(
                f"Could not write recovery record {self.path}: {e}"
            ) from e

        self.logger.info(
            "Recovery record written",
            instance_id=instance_id,
            drive_letter=drive_letter,
            entries=len(entries),
        )
        return MigrationRecord(
            instance_id=instance_id,
            drive_letter=drive_letter,
            entries=list(entries),
            path=str(self.path),
        )


def read_recovery_record(path: str | Path) -> list[RecordEntry]:
    """Parse every volumeId:devicePath line in a recovery file, oldest first."""
    content = Path(path).read_text(encoding="utf-8")
    return [RecordEntry.from_line(line) for line in content.splitlines() if line.strip()]
