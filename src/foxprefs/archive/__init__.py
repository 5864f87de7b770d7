"""
Zip archive access for foxprefs.

Reads preference files bundled inside an application resource archive
(omni.ja) without extracting the archive to disk.
"""

from foxprefs.archive.reader import (
    Archive,
    EntryInfo,
    open_archive,
)

__all__ = ["Archive", "EntryInfo", "open_archive"]
