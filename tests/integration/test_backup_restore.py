import json
import os
import shutil
import unittest
import tempfile

import pytest

from keysmith.backup_system import BACKUP_DIR_NAME, MANIFEST_FILE_NAME, BackupManager
from keysmith.errors import BackupCorruptionError, BackupNotFoundError
from keysmith.json_store import LocaleStore

BACKUP_ID_PATTERN = r'^backup-\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z-[0-9a-f]{6}$'


def _read_bytes(path):
    with open(path, 'rb') as f:
        return f.read()


class TestBackupRoundTrip(unittest.TestCase):
    def setUp(self):
        self.directory = tempfile.mkdtemp()
        self.store = LocaleStore(self.directory)
        self.backups = BackupManager(self.directory)
        self.store.write('fa', {'btn_save': 'ذخیره', 'btn_cancel': 'لغو'})
        self.store.write('en', {'btn_save': 'Save', 'btn_cancel': 'Cancel'})

    def tearDown(self):
        shutil.rmtree(self.directory)

    def test_restore_reproduces_pre_mutation_content(self):
        before = {locale: _read_bytes(self.store.file_path(locale)) for locale in ('fa', 'en')}
        backup_id = self.backups.create_backup('Before test mutation')

        self.store.update('fa', {'btn_save': 'ثبت', 'extra_key': 'اضافه'})
        self.store.write('en', {})

        self.backups.restore_backup(backup_id)

        for locale in ('fa', 'en'):
            self.assertEqual(_read_bytes(self.store.file_path(locale)), before[locale])

    def test_manifest_lists_copied_files(self):
        backup_id = self.backups.create_backup('Manual snapshot')

        self.assertRegex(backup_id, BACKUP_ID_PATTERN)
        manifest_path = os.path.join(self.directory, BACKUP_DIR_NAME, backup_id, MANIFEST_FILE_NAME)
        with open(manifest_path, 'r', encoding='utf-8') as f:
            manifest = json.load(f)

        self.assertEqual(manifest['id'], backup_id)
        self.assertEqual(manifest['files'], ['en.json', 'fa.json'])
        self.assertEqual(manifest['description'], 'Manual snapshot')
        self.assertEqual(self.backups.get_backup_info(backup_id).files, ['en.json', 'fa.json'])

    def test_restore_only_overwrites_listed_files(self):
        backup_id = self.backups.create_backup()
        self.store.write('ar', {'btn_save': 'حفظ'})

        self.backups.restore_backup(backup_id)

        self.assertEqual(self.store.read('ar'), {'btn_save': 'حفظ'})

    def test_corrupt_backup_is_rejected_before_any_file_changes(self):
        backup_id = self.backups.create_backup()
        os.remove(os.path.join(self.directory, BACKUP_DIR_NAME, backup_id, 'fa.json'))
        self.store.write('en', {'changed': 'Changed'})

        with self.assertRaises(BackupCorruptionError) as context:
            self.backups.restore_backup(backup_id)

        self.assertEqual(context.exception.missing_file, 'fa.json')
        self.assertEqual(self.store.read('en'), {'changed': 'Changed'})

    def test_unknown_backup(self):
        with self.assertRaises(BackupNotFoundError):
            self.backups.restore_backup('backup-missing')
        with self.assertRaises(BackupNotFoundError):
            self.backups.delete_backup('backup-missing')
        with self.assertRaises(BackupNotFoundError):
            self.backups.get_backup_info('../fa.json')


def test_list_backups_without_backup_directory(locale_dir):
    assert BackupManager(locale_dir).list_backups() == []


def test_empty_directory_backup(locale_dir):
    backups = BackupManager(locale_dir)
    backup_id = backups.create_backup()
    assert backups.get_backup_info(backup_id).files == []


def test_list_backups_newest_first_and_skips_invalid(locale_dir, write_locale):
    write_locale('fa', {'a_key': 'x'})
    backups = BackupManager(locale_dir)
    first = backups.create_backup('first')
    second = backups.create_backup('second')
    os.makedirs(os.path.join(locale_dir, BACKUP_DIR_NAME, 'unfinished'))

    listed = backups.list_backups()

    assert [info.id for info in listed] == [second, first]
    assert listed[0].description == 'second'


def test_cleanup_keeps_newest(locale_dir, write_locale):
    write_locale('fa', {'a_key': 'x'})
    backups = BackupManager(locale_dir)
    created = [backups.create_backup(f'backup {i}') for i in range(4)]

    assert backups.cleanup_old_backups(keep=5) == 0
    assert backups.cleanup_old_backups(keep=2) == 2
    assert [info.id for info in backups.list_backups()] == [created[3], created[2]]
    assert backups.cleanup_old_backups(keep=0) == 2
    assert backups.list_backups() == []


def test_cleanup_rejects_negative_keep(locale_dir):
    with pytest.raises(ValueError):
        BackupManager(locale_dir).cleanup_old_backups(keep=-1)


def test_delete_backup(locale_dir, write_locale):
    write_locale('fa', {'a_key': 'x'})
    backups = BackupManager(locale_dir)
    backup_id = backups.create_backup()

    backups.delete_backup(backup_id)

    assert not os.path.exists(os.path.join(locale_dir, BACKUP_DIR_NAME, backup_id))
    assert backups.list_backups() == []
