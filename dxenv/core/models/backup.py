"""
BackupInfo model — metadata sealing one backup unit.

Stored as ``backup-info.json`` next to the copied files. The aggregate
checksum is SHA-256 over the concatenated per-file hex digests, in the
order the files were processed.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator


class BackupInfo(BaseModel):
    """One backup unit: which files, from where, and their seal."""

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    description: str = ""
    files: list[str] = Field(default_factory=list)       # basenames inside the unit
    checksum: str
    sources: dict[str, str] = Field(default_factory=dict)  # basename -> original absolute path

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Sidecars written without an offset are read as UTC."""
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    def source_for(self, filename: str) -> str | None:
        """Original location of a backed-up file, if it was recorded."""
        return self.sources.get(filename)
