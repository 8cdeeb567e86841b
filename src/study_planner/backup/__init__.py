"""Backup snapshot codec."""

from study_planner.backup.codec import (
    SNAPSHOT_VERSION,
    backup_filename,
    dumps_snapshot,
    export_snapshot,
    import_snapshot,
)

__all__ = [
    "SNAPSHOT_VERSION",
    "backup_filename",
    "dumps_snapshot",
    "export_snapshot",
    "import_snapshot",
]
