"""Exception types raised by the locale store, backups and consolidation."""
import errno
from typing import Optional


class KeysmithError(Exception):
    """Base class for all errors raised by keysmith."""


class FileSystemError(KeysmithError):
    """
    A locale or backup file could not be read or written.

    Missing locale files are not errors; this covers permission, disk space
    and other operating system failures. ``path`` is the file that failed and
    ``code`` the errno name (e.g. ``EACCES``) when one is available.
    """

    def __init__(self, message: str, path: str, code: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.code = code

    @classmethod
    def from_os_error(cls, action: str, path: str, exc: OSError) -> 'FileSystemError':
        code = errno.errorcode.get(exc.errno) if exc.errno is not None else None
        return cls(f"Failed to {action} '{path}': {exc.strerror or exc}", path, code)


class StoreStructureError(KeysmithError):
    """A locale file is not a flat JSON object of string values."""

    def __init__(self, message: str, path: str):
        super().__init__(message)
        self.path = path


class BackupError(KeysmithError):
    """Base class for backup and restore failures."""


class BackupNotFoundError(BackupError):
    def __init__(self, backup_id: str):
        super().__init__(f"Backup not found: {backup_id}")
        self.backup_id = backup_id


class BackupCorruptionError(BackupError):
    """The manifest lists a file that is missing from the snapshot."""

    def __init__(self, backup_id: str, missing_file: str):
        super().__init__(
            f"Backup '{backup_id}' is corrupt: manifest lists '{missing_file}' "
            f"but the snapshot does not contain it"
        )
        self.backup_id = backup_id
        self.missing_file = missing_file


class ConsolidationError(KeysmithError):
    """A consolidation decision cannot be applied to the store."""
