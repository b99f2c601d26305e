import logging
import os
from typing import Dict, List, Optional, Sequence

from keysmith.app_config import AppConfig
from keysmith.backup_system import DEFAULT_BACKUP_DESCRIPTION, BackupManager
from keysmith.duplicate_value_scanner import DuplicateValueScanner
from keysmith.errors import KeysmithError
from keysmith.json_store import LocaleStore
from keysmith.key_validator import KeyValidator
from keysmith.models import (
    BackupInfo,
    DuplicateCheckResult,
    DuplicateValue,
    DuplicateValueReport,
    GeneratedKey,
    KeepSeparate,
    TranslationEntry,
    ValidationResult,
)
from keysmith.store_validator import (
    check_encoding_and_mojibake,
    check_key_coverage,
    find_placeholder_mismatches,
)

logger = logging.getLogger(__name__)


class TranslationManager:
    """
    Entry point for every change to the locale files.

    Composes the locale store, the backup manager and the duplicate value
    scanner. When ``create_backups`` is enabled each mutating call takes one
    snapshot first; in dry-run mode mutations are only logged.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.store = LocaleStore(config.translations_dir)
        self.backups = BackupManager(config.translations_dir)
        self.scanner = DuplicateValueScanner(
            self.store, config.locales, KeyValidator(config.validation_rules())
        )

    def _prepare_mutation(self, description: str) -> bool:
        """Take a backup if enabled. Returns False when the mutation must be skipped."""
        if self.config.dry_run:
            logger.info("Dry run, skipping: %s", description)
            return False
        if self.config.create_backups:
            self.backups.create_backup(f"Before {description}")
        return True

    def add_translation(self, entry: TranslationEntry) -> None:
        if not self._prepare_mutation(f"adding translation: {entry.key}"):
            return

        duplicate_check = self.check_duplicate(entry.value, entry.locale)
        if duplicate_check.is_duplicate and duplicate_check.existing_key != entry.key:
            logger.warning(
                'Duplicate value detected for key "%s". Existing key: "%s"',
                entry.key, duplicate_check.existing_key
            )

        self.store.add_translation_entry(entry)
        logger.info('Added translation: %s = "%s" (%s)', entry.key, entry.value, entry.locale)

    def add_translations(self, entries: Sequence[TranslationEntry]) -> None:
        """Add many entries with a single backup, writing each locale file once."""
        if not entries:
            return
        if not self._prepare_mutation(f"adding {len(entries)} translations"):
            return

        entries_by_locale: Dict[str, Dict[str, str]] = {}
        for entry in entries:
            entries_by_locale.setdefault(entry.locale, {})[entry.key] = entry.value

        for locale, translations in entries_by_locale.items():
            self.store.update(locale, translations)

        logger.info("Added %d translations across %d locales", len(entries), len(entries_by_locale))

    def check_duplicate(self, value: str, locale: Optional[str] = None) -> DuplicateCheckResult:
        return self.scanner.check_value_exists(value, locale or self.config.source_locale)

    def scan_for_duplicates(self) -> DuplicateValueReport:
        return self.scanner.scan()

    def consolidate_duplicates(self, locale: str, duplicate_value: DuplicateValue, decision) -> None:
        """Apply a consolidation decision, backing up first unless nothing will change."""
        if not isinstance(decision, KeepSeparate):
            if not self._prepare_mutation(f"consolidating duplicates in {locale}"):
                return
        self.scanner.consolidate(locale, duplicate_value, decision)

    # --- Store passthroughs ---

    def get_translation_keys(self, locale: str) -> List[str]:
        return self.store.get_translation_keys(locale)

    def get_translation_values(self, locale: str) -> List[str]:
        return self.store.get_translation_values(locale)

    def key_exists(self, locale: str, key: str) -> bool:
        return self.store.key_exists(locale, key)

    def read_translation_file(self, locale: str) -> Dict[str, str]:
        return self.store.read(locale)

    def write_translation_file(self, locale: str, translations: Dict[str, str]) -> None:
        if not self._prepare_mutation(f"writing {locale} translation file"):
            return
        self.store.write(locale, translations)

    def validate_translation_file(self, locale: str) -> Dict[str, object]:
        return self.store.validate_structure(locale)

    # --- Backups ---

    def create_backup(self, description: str = DEFAULT_BACKUP_DESCRIPTION) -> str:
        return self.backups.create_backup(description)

    def restore_backup(self, backup_id: str) -> None:
        self.backups.restore_backup(backup_id)

    def list_backups(self) -> List[BackupInfo]:
        return self.backups.list_backups()

    def cleanup_backups(self, keep: Optional[int] = None) -> int:
        return self.backups.cleanup_old_backups(self.config.backup_keep if keep is None else keep)

    # --- Integration checks ---

    def validate_integration(self, check_keys: bool = True, check_syntax: bool = True,
                             check_duplicates: bool = True, check_encoding: bool = True) -> ValidationResult:
        """
        Check that the source and target locale files are consistent.

        Args:
            check_keys: Report source keys missing from the target (errors),
                target keys the source no longer has (warnings) and values
                whose placeholders differ (warnings).
            check_syntax: Validate both files as flat string maps.
            check_duplicates: Warn about duplicate values on disk.
            check_encoding: Check both files for invalid UTF-8 and mojibake.

        Returns:
            ValidationResult: Valid when no errors were found.
        """
        logger.info('Starting translation file validation')
        errors: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []
        source_locale = self.config.source_locale
        target_locale = self.config.target_locale

        if check_syntax:
            for locale in self.config.locales:
                structure = self.store.validate_structure(locale)
                if not structure['is_valid']:
                    errors.extend(f"Translation file {locale}: {error}" for error in structure['errors'])

        if check_duplicates:
            try:
                report = self.scanner.scan()
            except KeysmithError as e:
                warnings.append(f"Failed to check for duplicate values: {e}")
            else:
                if report.total_duplicates:
                    warnings.append(f"Found {report.total_duplicates} duplicate translation values")
                    suggestions.append('Consider consolidating duplicate translations to reduce file size')

        if check_keys:
            try:
                source = self.store.read(source_locale)
                target = self.store.read(target_locale)
            except KeysmithError as e:
                errors.append(f"Failed to validate translation keys: {e}")
            else:
                missing_keys, orphaned_keys = check_key_coverage(source, target)
                if missing_keys:
                    errors.append(f"Missing {len(missing_keys)} keys in {target_locale} translation file")
                if orphaned_keys:
                    warnings.append(f"Found {len(orphaned_keys)} orphaned keys in {target_locale} translation file")
                    suggestions.append('Remove orphaned translation keys to keep files clean')
                for key in find_placeholder_mismatches(source, target):
                    warnings.append(f'Placeholders differ between {source_locale} and {target_locale} for key "{key}"')

        if check_encoding:
            for locale in self.config.locales:
                path = self.store.file_path(locale)
                if os.path.exists(path):
                    errors.extend(check_encoding_and_mojibake(path))

        is_valid = not errors
        logger.info(
            "Validation completed: %s (%d errors, %d warnings)",
            'PASSED' if is_valid else 'FAILED', len(errors), len(warnings)
        )
        return ValidationResult(is_valid=is_valid, errors=errors, warnings=warnings, suggestions=suggestions)

    def persist_generated_keys(self, generated_keys: Sequence[GeneratedKey]) -> Dict[str, int]:
        """
        Store resolved keys in the locale files.

        Each key is written to the source locale with its original text. Keys
        the target locale lacks get the original text as a placeholder until
        they are translated. One backup covers the whole call.

        Returns:
            Dict[str, int]: Number of entries written per locale.
        """
        if not generated_keys:
            return {}
        if not self._prepare_mutation(f"persisting {len(generated_keys)} generated keys"):
            return {}

        source_entries = {generated.key: generated.original_text for generated in generated_keys}
        target = self.store.read(self.config.target_locale)
        target_entries = {key: value for key, value in source_entries.items() if key not in target}

        self.store.update(self.config.source_locale, source_entries)
        if target_entries:
            self.store.update(self.config.target_locale, target_entries)

        logger.info(
            "Persisted %d keys (%d new placeholders in %s)",
            len(source_entries), len(target_entries), self.config.target_locale
        )
        return {self.config.source_locale: len(source_entries), self.config.target_locale: len(target_entries)}
