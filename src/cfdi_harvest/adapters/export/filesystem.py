"""Export file naming on the local filesystem."""

from datetime import datetime
from pathlib import Path

EXPORT_PREFIX = "extracted-data"


def timestamp(now: datetime) -> str:
    """ISO timestamp to the second, with colons made filename-safe."""
    return now.replace(microsecond=0).isoformat().replace(":", "-")


def export_path(directory: Path, suffix: str, now: datetime | None = None) -> Path:
    """Build ``extracted-data_<timestamp><suffix>`` in directory.

    Existing files are never overwritten; a counter is appended instead.
    """
    directory.mkdir(parents=True, exist_ok=True)
    stem = f"{EXPORT_PREFIX}_{timestamp(now or datetime.now())}"
    dest = directory / f"{stem}{suffix}"

    counter = 1
    while dest.exists():
        dest = directory / f"{stem} ({counter}){suffix}"
        counter += 1

    return dest
