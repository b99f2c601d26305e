import json
import logging
import os
import secrets
import shutil
from datetime import datetime, timezone
from typing import List

from keysmith.errors import (
    BackupCorruptionError,
    BackupNotFoundError,
    FileSystemError,
)
from keysmith.models import BackupInfo

logger = logging.getLogger(__name__)

BACKUP_DIR_NAME = '.backups'
MANIFEST_FILE_NAME = 'backup-info.json'
DEFAULT_BACKUP_DESCRIPTION = 'Automatic backup'
DEFAULT_KEEP_COUNT = 10


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def generate_backup_id(timestamp: str) -> str:
    """``backup-<timestamp with ':' and '.' replaced by '-'>-<6 hex chars>``."""
    safe_timestamp = timestamp.replace(':', '-').replace('.', '-')
    return f"backup-{safe_timestamp}-{secrets.token_hex(3)}"


class BackupManager:
    """
    Snapshots of every locale file in a translation directory.

    Each snapshot lives in ``<directory>/.backups/<id>/`` next to a
    ``backup-info.json`` manifest. The manifest is written last, so a
    directory without one is an unfinished snapshot and is ignored.
    """

    def __init__(self, translation_directory: str):
        self.translation_directory = translation_directory
        self.backup_directory = os.path.join(translation_directory, BACKUP_DIR_NAME)

    def _backup_path(self, backup_id: str) -> str:
        if not backup_id or os.path.basename(backup_id) != backup_id or backup_id in ('.', '..'):
            raise BackupNotFoundError(backup_id)
        return os.path.join(self.backup_directory, backup_id)

    def _locale_files(self) -> List[str]:
        try:
            names = os.listdir(self.translation_directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FileSystemError.from_os_error('list translation directory', self.translation_directory, e) from e
        return sorted(
            name for name in names
            if name.endswith('.json') and os.path.isfile(os.path.join(self.translation_directory, name))
        )

    def create_backup(self, description: str = DEFAULT_BACKUP_DESCRIPTION) -> str:
        """
        Copy every locale file into a new snapshot.

        Args:
            description (str): Free text stored in the manifest.

        Returns:
            str: The new backup id.

        Raises:
            FileSystemError: If the snapshot cannot be written.
        """
        timestamp = _utc_timestamp()
        backup_id = generate_backup_id(timestamp)
        backup_path = os.path.join(self.backup_directory, backup_id)

        try:
            os.makedirs(backup_path)
        except OSError as e:
            raise FileSystemError.from_os_error('create backup directory', backup_path, e) from e

        backed_up_files = []
        for file_name in self._locale_files():
            source = os.path.join(self.translation_directory, file_name)
            try:
                shutil.copy2(source, os.path.join(backup_path, file_name))
            except FileNotFoundError:
                # Removed between listing and copying.
                continue
            except OSError as e:
                raise FileSystemError.from_os_error('back up translation file', source, e) from e
            backed_up_files.append(file_name)
            logger.debug("Backed up file: %s", file_name)

        info = BackupInfo(id=backup_id, timestamp=timestamp, files=backed_up_files, description=description)
        manifest_path = os.path.join(backup_path, MANIFEST_FILE_NAME)
        try:
            with open(manifest_path, 'w', encoding='utf-8') as f:
                json.dump(info.to_dict(), f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise FileSystemError.from_os_error('write backup manifest', manifest_path, e) from e

        logger.info("Created backup %s with %d files", backup_id, len(backed_up_files))
        return backup_id

    def get_backup_info(self, backup_id: str) -> BackupInfo:
        """
        Read the manifest of one backup.

        Raises:
            BackupNotFoundError: If the backup or its manifest does not exist.
            BackupCorruptionError: If the manifest cannot be parsed.
        """
        manifest_path = os.path.join(self._backup_path(backup_id), MANIFEST_FILE_NAME)
        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise BackupNotFoundError(backup_id) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BackupCorruptionError(backup_id, MANIFEST_FILE_NAME) from e
        except OSError as e:
            raise FileSystemError.from_os_error('read backup manifest', manifest_path, e) from e

        try:
            return BackupInfo.from_dict(data)
        except (KeyError, TypeError) as e:
            raise BackupCorruptionError(backup_id, MANIFEST_FILE_NAME) from e

    def restore_backup(self, backup_id: str) -> None:
        """
        Copy every file listed in a backup's manifest back into place.

        The snapshot is checked in full before any locale file is touched.

        Raises:
            BackupNotFoundError: If the backup does not exist.
            BackupCorruptionError: If a listed file is missing from the snapshot.
            FileSystemError: If a file cannot be copied back.
        """
        info = self.get_backup_info(backup_id)
        backup_path = self._backup_path(backup_id)

        for file_name in info.files:
            if not os.path.isfile(os.path.join(backup_path, file_name)):
                raise BackupCorruptionError(backup_id, file_name)

        os.makedirs(self.translation_directory, exist_ok=True)
        for file_name in info.files:
            target = os.path.join(self.translation_directory, file_name)
            try:
                shutil.copy2(os.path.join(backup_path, file_name), target)
            except OSError as e:
                raise FileSystemError.from_os_error('restore translation file', target, e) from e
            logger.debug("Restored file: %s", file_name)

        logger.info("Restored backup %s (%d files)", backup_id, len(info.files))

    def list_backups(self) -> List[BackupInfo]:
        """All readable backups, newest first."""
        try:
            entries = os.listdir(self.backup_directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FileSystemError.from_os_error('list backups in', self.backup_directory, e) from e

        backups = []
        for entry in entries:
            if not os.path.isdir(os.path.join(self.backup_directory, entry)):
                continue
            try:
                backups.append(self.get_backup_info(entry))
            except (BackupNotFoundError, BackupCorruptionError):
                logger.warning("Skipping invalid backup directory: %s", entry)

        backups.sort(key=lambda info: (info.timestamp, info.id), reverse=True)
        return backups

    def delete_backup(self, backup_id: str) -> None:
        backup_path = self._backup_path(backup_id)
        if not os.path.isdir(backup_path):
            raise BackupNotFoundError(backup_id)
        try:
            shutil.rmtree(backup_path)
        except OSError as e:
            raise FileSystemError.from_os_error('delete backup', backup_path, e) from e
        logger.info("Deleted backup: %s", backup_id)

    def cleanup_old_backups(self, keep: int = DEFAULT_KEEP_COUNT) -> int:
        """
        Delete all but the ``keep`` newest backups.

        Returns:
            int: The number of backups deleted.

        Raises:
            ValueError: If ``keep`` is negative.
        """
        if keep < 0:
            raise ValueError(f"keep must be zero or greater, got {keep}")

        backups = self.list_backups()
        if len(backups) <= keep:
            logger.info("No backup cleanup needed. Current backups: %d, keep: %d", len(backups), keep)
            return 0

        for info in backups[keep:]:
            self.delete_backup(info.id)

        deleted = len(backups) - keep
        logger.info("Cleaned up %d old backups", deleted)
        return deleted
