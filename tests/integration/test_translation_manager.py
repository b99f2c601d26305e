import os

import pytest

from keysmith.backup_system import BACKUP_DIR_NAME
from keysmith.errors import ConsolidationError, StoreStructureError
from keysmith.key_manager import KeyManager
from keysmith.models import (
    Consolidate,
    DuplicateValue,
    GeneratedKey,
    KeepSeparate,
    TextMatch,
    TranslationEntry,
)
from keysmith.translation_manager import TranslationManager


@pytest.fixture
def manager(make_config):
    return TranslationManager(make_config())


def test_add_translation_takes_backup_first(manager, write_locale):
    write_locale('fa', {'btn_cancel': 'لغو'})

    manager.add_translation(TranslationEntry(key='btn_save', value='ذخیره', locale='fa'))

    assert manager.read_translation_file('fa') == {'btn_cancel': 'لغو', 'btn_save': 'ذخیره'}
    backups = manager.list_backups()
    assert len(backups) == 1
    assert backups[0].description == 'Before adding translation: btn_save'
    assert backups[0].files == ['fa.json']


def test_add_translation_warns_on_duplicate_value(manager, write_locale, caplog):
    write_locale('fa', {'confirm_save': 'ذخیره'})

    with caplog.at_level('WARNING', logger='keysmith'):
        manager.add_translation(TranslationEntry(key='btn_save', value='ذخیره', locale='fa'))

    assert 'Existing key: "confirm_save"' in caplog.text
    assert manager.key_exists('fa', 'btn_save')


def test_backups_can_be_disabled(make_config, locale_dir):
    manager = TranslationManager(make_config(create_backups=False))

    manager.add_translation(TranslationEntry(key='btn_save', value='ذخیره', locale='fa'))

    assert not os.path.exists(os.path.join(locale_dir, BACKUP_DIR_NAME))
    assert manager.get_translation_keys('fa') == ['btn_save']


def test_dry_run_writes_nothing(make_config, locale_dir):
    manager = TranslationManager(make_config(dry_run=True))

    manager.add_translation(TranslationEntry(key='btn_save', value='ذخیره', locale='fa'))
    manager.write_translation_file('en', {'btn_save': 'Save'})

    assert os.listdir(locale_dir) == []


def test_add_translations_uses_one_backup(manager):
    manager.add_translations([
        TranslationEntry(key='btn_save', value='ذخیره', locale='fa'),
        TranslationEntry(key='btn_save', value='Save', locale='en'),
        TranslationEntry(key='btn_cancel', value='لغو', locale='fa'),
    ])

    assert manager.read_translation_file('fa') == {'btn_cancel': 'لغو', 'btn_save': 'ذخیره'}
    assert manager.get_translation_values('en') == ['Save']
    assert len(manager.list_backups()) == 1


def test_consolidate_duplicates(manager, write_locale):
    write_locale('fa', {'save_btn': 'ذخیره', 'confirm_save': 'ذخیره'})
    report = manager.scan_for_duplicates()
    duplicate = report.duplicates_by_locale['fa'][0]

    manager.consolidate_duplicates('fa', duplicate, KeepSeparate())
    assert manager.list_backups() == []

    manager.consolidate_duplicates('fa', duplicate, Consolidate('save_btn'))
    assert manager.read_translation_file('fa') == {'save_btn': 'ذخیره'}
    assert len(manager.list_backups()) == 1


def test_failed_consolidation_can_be_rolled_back(manager, write_locale):
    write_locale('fa', {'save_btn': 'ذخیره', 'confirm_save': 'ذخیره'})
    duplicate = DuplicateValue('ذخیره', ['save_btn', 'confirm_save'])

    with pytest.raises(ConsolidationError):
        manager.consolidate_duplicates('fa', duplicate, Consolidate('Bad Key'))

    backup_id = manager.list_backups()[0].id
    manager.restore_backup(backup_id)
    assert manager.read_translation_file('fa') == {'confirm_save': 'ذخیره', 'save_btn': 'ذخیره'}


def test_check_duplicate_defaults_to_source_locale(manager, write_locale):
    write_locale('fa', {'btn_save': 'ذخیره'})

    assert manager.check_duplicate('ذخیره').is_duplicate
    assert not manager.check_duplicate('ذخیره', 'en').is_duplicate


def test_cleanup_backups_uses_configured_keep(make_config, write_locale):
    write_locale('fa', {'a_key': 'x'})
    manager = TranslationManager(make_config(backup_keep=1))
    for i in range(3):
        manager.create_backup(f'snapshot {i}')

    assert manager.cleanup_backups() == 2
    assert manager.cleanup_backups(keep=0) == 1


def test_validate_integration_reports_coverage(manager, write_locale):
    write_locale('fa', {'greeting': 'سلام {name}', 'btn_save': 'ذخیره', 'btn_cancel': 'لغو'})
    write_locale('en', {'greeting': 'Hello', 'btn_save': 'Save', 'old_title': 'Old'})

    result = manager.validate_integration()

    assert not result.is_valid
    assert result.errors == ['Missing 1 keys in en translation file']
    assert 'Found 1 orphaned keys in en translation file' in result.warnings
    assert 'Placeholders differ between fa and en for key "greeting"' in result.warnings
    assert 'Remove orphaned translation keys to keep files clean' in result.suggestions


def test_validate_integration_passes_for_consistent_files(manager, write_locale):
    write_locale('fa', {'btn_save': 'ذخیره', 'greeting': 'سلام {name}'})
    write_locale('en', {'btn_save': 'Save', 'greeting': 'Hello {name}'})

    result = manager.validate_integration()

    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_validate_integration_reports_structure_duplicates_and_encoding(manager, locale_dir, write_locale):
    write_locale('fa', {'a_key': 'ذخیره', 'b_key': 'ذخیره'})
    write_locale('en', {'a_key': 'verfÃ¼gbar', 'b_key': 'Save'})

    result = manager.validate_integration()

    assert 'Found 1 duplicate translation values' in result.warnings
    assert any('Potential mojibake detected' in error for error in result.errors)

    with open(os.path.join(locale_dir, 'en.json'), 'w', encoding='utf-8') as f:
        f.write('{"a_key": 1}')
    result = manager.validate_integration(check_keys=False, check_duplicates=False, check_encoding=False)
    assert result.errors == ['Translation file en: Translation key "a_key" has non-string value: int']


def test_validate_integration_reports_non_string_values(manager, write_locale):
    write_locale('fa', {'a': 'x', 'b': 5})
    write_locale('en', {'a': 'y'})

    result = manager.validate_integration()

    assert not result.is_valid
    assert result.errors[0] == 'Translation file fa: Translation key "b" has non-string value: int'
    assert any(error.startswith('Failed to validate translation keys') for error in result.errors)
    assert any(warning.startswith('Failed to check for duplicate values') for warning in result.warnings)


def test_add_translation_to_malformed_file_raises_structure_error(manager, write_locale):
    write_locale('fa', {'a': 'x', 'b': 5})

    with pytest.raises(StoreStructureError):
        manager.add_translation(TranslationEntry(key='btn_save', value='ذخیره', locale='fa'))


def test_persist_generated_keys(manager, write_locale):
    write_locale('en', {'btn_cancel': 'Cancel'})
    generated = [
        GeneratedKey(key='btn_save', original_text='ذخیره', confidence=0.9),
        GeneratedKey(key='btn_cancel', original_text='لغو', confidence=0.9),
    ]

    counts = manager.persist_generated_keys(generated)

    assert counts == {'fa': 2, 'en': 1}
    assert manager.read_translation_file('fa') == {'btn_cancel': 'لغو', 'btn_save': 'ذخیره'}
    assert manager.read_translation_file('en') == {'btn_cancel': 'Cancel', 'btn_save': 'ذخیره'}
    assert len(manager.list_backups()) == 1
    assert manager.persist_generated_keys([]) == {}


def test_resolve_and_persist_workflow(make_config, write_locale):
    write_locale('fa', {'btn_save': 'ذخیره'})
    write_locale('en', {'btn_save': 'Save'})
    config = make_config()
    translations = TranslationManager(config)
    keys = KeyManager.from_config(config)
    keys.load_existing({locale: translations.read_translation_file(locale) for locale in config.locales})

    generated = keys.generate_keys([
        TextMatch(text='ذخیره', file_path='src/Form.vue', line_number=4, context='btn'),
        TextMatch(text='لغو', file_path='src/Form.vue', line_number=5, context='btn'),
    ])
    translations.persist_generated_keys(generated)

    assert [item.key for item in generated] == ['btn_save_btn', 'btn_cancel']
    assert translations.read_translation_file('en')['btn_save'] == 'Save'
    assert set(translations.get_translation_keys('fa')) == {'btn_save', 'btn_save_btn', 'btn_cancel'}
    assert translations.validate_integration(check_duplicates=False).is_valid
