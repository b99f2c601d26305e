import logging
from typing import Dict, List, Optional, Sequence

from keysmith.errors import ConsolidationError
from keysmith.json_store import LocaleStore
from keysmith.key_validator import KeyValidator
from keysmith.models import (
    Consolidate,
    DuplicateCheckResult,
    DuplicateValue,
    DuplicateValueReport,
    KeepSeparate,
    Rename,
)
from keysmith.text_utils import normalize_comparison_value

logger = logging.getLogger(__name__)

MAX_SIMILAR_VALUES = 5


class DuplicateValueScanner:
    """
    Finds duplicate values already committed to the locale files.

    Works on the files directly, independent of any in-memory key registry.
    Mutating calls do not take backups; that is left to the caller.
    """

    def __init__(self, store: LocaleStore, locales: Sequence[str],
                 validator: Optional[KeyValidator] = None):
        self.store = store
        self.locales = list(locales)
        self.validator = validator or KeyValidator()

    def scan(self) -> DuplicateValueReport:
        """
        Scan every configured locale for values held by more than one key.

        Returns:
            DuplicateValueReport: Groups per locale plus readable suggestions.
        """
        report = DuplicateValueReport()

        for locale in self.locales:
            duplicates = self.find_duplicates_in_locale(locale)
            if duplicates:
                report.duplicates_by_locale[locale] = duplicates
                report.total_duplicates += len(duplicates)
                report.suggestions.append(f"Found {len(duplicates)} duplicate values in {locale} locale")

        if report.total_duplicates:
            report.suggestions.append(
                'Consider consolidating duplicate translations to reduce file size and improve maintainability'
            )

        logger.info("Duplicate scan complete. Found %d duplicates across all locales", report.total_duplicates)
        return report

    def find_duplicates_in_locale(self, locale: str) -> List[DuplicateValue]:
        translations = self.store.read(locale)
        groups: Dict[str, List[str]] = {}
        for key, value in translations.items():
            groups.setdefault(normalize_comparison_value(value), []).append(key)

        return [
            DuplicateValue(value=translations[keys[0]], keys=keys, locales=[locale])
            for keys in groups.values()
            if len(keys) > 1
        ]

    def check_value_exists(self, value: str, locale: str) -> DuplicateCheckResult:
        """
        Look up an exact value in a locale file.

        Keys whose value contains, or is contained in, ``value`` (ignoring
        case and surrounding whitespace) are returned as ``similar_keys``.
        """
        translations = self.store.read(locale)
        existing_keys = [key for key, stored in translations.items() if stored == value]

        target = value.lower().strip()
        similar_keys = []
        for key, stored in translations.items():
            if stored == value:
                continue
            candidate = stored.lower().strip()
            if target in candidate or candidate in target:
                similar_keys.append(key)

        return DuplicateCheckResult(
            is_duplicate=bool(existing_keys),
            existing_key=existing_keys[0] if existing_keys else None,
            similar_keys=similar_keys[:MAX_SIMILAR_VALUES],
        )

    def consolidate(self, locale: str, duplicate_value: DuplicateValue, decision) -> None:
        """
        Apply an explicit consolidation decision to one duplicate group.

        Args:
            locale (str): The locale file to rewrite.
            duplicate_value (DuplicateValue): The group, as reported by ``scan``.
            decision: ``Consolidate``, ``Rename`` or ``KeepSeparate``.

        Raises:
            ConsolidationError: If the decision is unknown, names an invalid
                key, or would overwrite a key holding a different value.
        """
        if isinstance(decision, KeepSeparate):
            logger.info("Keeping duplicate values separate for: %r", duplicate_value.value)
            return

        if isinstance(decision, Consolidate):
            surviving_key = decision.target_key
            removed_keys = [key for key in duplicate_value.keys if key != surviving_key]
        elif isinstance(decision, Rename):
            surviving_key = decision.new_key
            removed_keys = list(duplicate_value.keys)
        else:
            raise ConsolidationError(f"Unknown consolidation decision: {decision!r}")

        validation = self.validator.validate_key(surviving_key, check_uniqueness=False)
        if not validation.is_valid:
            raise ConsolidationError(
                f"Key '{surviving_key}' is not a valid translation key: {'; '.join(validation.errors)}"
            )

        translations = self.store.read(locale)
        current = translations.get(surviving_key)
        if (current is not None and surviving_key not in duplicate_value.keys
                and normalize_comparison_value(current) != normalize_comparison_value(duplicate_value.value)):
            raise ConsolidationError(
                f"Key '{surviving_key}' already exists in locale {locale} with a different value"
            )

        for key in removed_keys:
            if translations.pop(key, None) is not None:
                logger.info("Removed duplicate key: %s", key)
        translations[surviving_key] = duplicate_value.value

        self.store.write(locale, translations)
        logger.info(
            "Consolidated %d keys into %s for locale %s",
            len(duplicate_value.keys), surviving_key, locale
        )

    def get_consolidation_suggestions(self, duplicate_value: DuplicateValue) -> List[str]:
        suggestions = []
        shortest = min(duplicate_value.keys, key=len)
        suggestions.append(f'Consider using "{shortest}" as the primary key')

        if any('_' in key for key in duplicate_value.keys):
            suggestions.append('Consider using semantic key names that describe the context')

        contexts = list(dict.fromkeys(key.split('_')[0] for key in duplicate_value.keys if '_' in key))
        if len(contexts) > 1:
            suggestions.append(f"Keys span multiple contexts: {', '.join(contexts)}")

        return suggestions
