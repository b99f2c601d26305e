import logging
from typing import Dict, List, Mapping, Optional

from rapidfuzz.distance import Levenshtein

from keysmith.models import DuplicateCheckResult, DuplicateValue, TranslationEntry
from keysmith.text_utils import normalize_comparison_value, sanitize_identifier

logger = logging.getLogger(__name__)

KEY_SIMILARITY_THRESHOLD = 0.7
VALUE_SIMILARITY_THRESHOLD = 0.8
MAX_SIMILAR_RESULTS = 5
ALTERNATE_SUFFIX = 'alt'


def similarity(first: str, second: str) -> float:
    """
    Normalized Levenshtein similarity: ``1 - distance / max(len)``.

    Two empty strings are identical (1.0); an empty and a non-empty string
    share nothing (0.0).
    """
    longest = max(len(first), len(second))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(first, second) / longest


class DuplicateDetector:
    """
    Tracks known keys and values per locale and answers duplicate queries.

    For each locale it keeps ``key -> value`` and ``normalized value -> keys``
    maps, rebuilt by ``load_translation_data`` and kept current through
    ``add_translation_entry``.
    """

    def __init__(self, key_similarity_threshold: float = KEY_SIMILARITY_THRESHOLD,
                 value_similarity_threshold: float = VALUE_SIMILARITY_THRESHOLD,
                 max_similar_results: int = MAX_SIMILAR_RESULTS):
        self.key_similarity_threshold = key_similarity_threshold
        self.value_similarity_threshold = value_similarity_threshold
        self.max_similar_results = max_similar_results
        self._translations: Dict[str, Dict[str, str]] = {}
        self._value_to_keys: Dict[str, Dict[str, List[str]]] = {}

    def load_translation_data(self, translation_data: Mapping[str, Mapping[str, str]]) -> None:
        """
        Replace all tracked data with ``{locale: {key: value}}``.

        Entries whose value is not a string are skipped with a warning.
        """
        self.clear()
        for locale, translations in translation_data.items():
            for key, value in translations.items():
                if not isinstance(value, str):
                    logger.warning(
                        'Skipping translation key "%s" in locale %s: non-string value %s',
                        key, locale, type(value).__name__
                    )
                    continue
                self._track(locale, key, value)
        logger.info("Loaded translations for %d locales into duplicate detector", len(self._translations))

    load_from = load_translation_data

    def add_translation_entry(self, entry: TranslationEntry) -> None:
        self._track(entry.locale, entry.key, entry.value)
        logger.debug("Added translation entry: %s.%s = %r", entry.locale, entry.key, entry.value)

    add_entry = add_translation_entry

    def _track(self, locale: str, key: str, value: str) -> None:
        locale_data = self._translations.setdefault(locale, {})
        value_map = self._value_to_keys.setdefault(locale, {})

        previous = locale_data.get(key)
        if previous is not None:
            previous_group = value_map.get(normalize_comparison_value(previous), [])
            if key in previous_group:
                previous_group.remove(key)
            if not previous_group:
                value_map.pop(normalize_comparison_value(previous), None)

        locale_data[key] = value
        group = value_map.setdefault(normalize_comparison_value(value), [])
        if key not in group:
            group.append(key)

    def check_key_duplicate(self, key: str, locale: Optional[str] = None) -> DuplicateCheckResult:
        """
        Check whether ``key`` already exists, in one locale or in any.

        Args:
            key: The key to look up.
            locale: Restrict the lookup to this locale.

        Returns:
            DuplicateCheckResult: ``similar_keys`` lists near-miss keys.
        """
        locales = [locale] if locale else list(self._translations)
        for current in locales:
            if key in self._translations.get(current, {}):
                return DuplicateCheckResult(
                    is_duplicate=True,
                    existing_key=key,
                    similar_keys=self._find_similar_keys(key, current),
                )
        return DuplicateCheckResult(is_duplicate=False, similar_keys=self._find_similar_keys(key, locale))

    def check_value_duplicate(self, value: str, locale: str) -> DuplicateCheckResult:
        """
        Check whether a value, after normalization, is already stored in ``locale``.

        Args:
            value: The translation value.
            locale: The locale to search.

        Returns:
            DuplicateCheckResult: On a hit ``existing_key`` is the first key
            holding the value and ``similar_keys`` all keys holding it.
        """
        existing_keys = self._value_to_keys.get(locale, {}).get(normalize_comparison_value(value))
        if existing_keys:
            return DuplicateCheckResult(
                is_duplicate=True,
                existing_key=existing_keys[0],
                similar_keys=list(existing_keys),
            )
        return DuplicateCheckResult(is_duplicate=False, similar_keys=self._find_similar_values(value, locale))

    def _find_similar_keys(self, target_key: str, locale: Optional[str] = None) -> List[str]:
        similar: List[str] = []
        locales = [locale] if locale else list(self._translations)
        for current in locales:
            for key in self._translations.get(current, {}):
                if key == target_key or key in similar:
                    continue
                if similarity(target_key, key) > self.key_similarity_threshold:
                    similar.append(key)
        return similar[:self.max_similar_results]

    def _find_similar_values(self, target_value: str, locale: str) -> List[str]:
        similar: List[str] = []
        normalized_target = normalize_comparison_value(target_value)
        for key, value in self._translations.get(locale, {}).items():
            normalized_value = normalize_comparison_value(value)
            if normalized_value == normalized_target:
                continue
            if similarity(normalized_target, normalized_value) > self.value_similarity_threshold:
                similar.append(key)
        return similar[:self.max_similar_results]

    def generate_contextual_suffix(self, base_key: str, context: Optional[str]) -> str:
        """Append a slug of ``context`` to ``base_key``, or ``_alt`` if it has none."""
        context_suffix = sanitize_identifier((context or '').lower())
        return f"{base_key}_{context_suffix}" if context_suffix else f"{base_key}_{ALTERNATE_SUFFIX}"

    def get_duplicate_values(self, locale: str) -> List[DuplicateValue]:
        duplicates = []
        locale_data = self._translations.get(locale, {})
        for keys in self._value_to_keys.get(locale, {}).values():
            if len(keys) > 1:
                duplicates.append(DuplicateValue(value=locale_data[keys[0]], keys=list(keys), locales=[locale]))
        return duplicates

    def get_duplicate_stats(self) -> Dict[str, Dict[str, int]]:
        stats: Dict[str, Dict[str, int]] = {}
        for locale, value_map in self._value_to_keys.items():
            duplicate_groups = [keys for keys in value_map.values() if len(keys) > 1]
            stats[locale] = {
                'total_keys': len(self._translations.get(locale, {})),
                'duplicate_values': len(duplicate_groups),
                'duplicate_keys': sum(len(keys) - 1 for keys in duplicate_groups),
            }
        return stats

    def get_keys(self, locale: str) -> List[str]:
        return list(self._translations.get(locale, {}))

    def clear(self) -> None:
        self._translations.clear()
        self._value_to_keys.clear()
        logger.debug('Cleared duplicate detector data')
