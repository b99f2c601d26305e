import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from tqdm import tqdm

from keysmith.duplicate_detector import (
    DuplicateDetector,
    KEY_SIMILARITY_THRESHOLD,
    VALUE_SIMILARITY_THRESHOLD,
)
from keysmith.key_generator import (
    FALLBACK_KEY,
    KeyGenerationOptions,
    KeyGenerator,
)
from keysmith.key_validator import KeyValidationRules, KeyValidator
from keysmith.models import (
    BatchFailure,
    ConsolidationSuggestion,
    DuplicateCheckResult,
    DuplicateValue,
    GeneratedKey,
    ResolutionResult,
    TextMatch,
    TranslationEntry,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = 'fa'
ALTERNATIVE_CONTEXTS = ('btn', 'label', 'title', 'msg', 'text')
NUMBERED_ALTERNATIVE_PENALTY = 0.8
CONSOLIDATION_CONFIDENCE = 0.8


class KeyManager:
    """
    Turns source text into final, run-wide unique translation keys.

    Composes the key generator, the key validator (which owns the registry
    of used keys) and the duplicate detector. Batches are resolved strictly
    in order because each resolution depends on the keys registered before
    it; callers that share a manager between threads must serialize access.
    """

    def __init__(self, generation_options: Optional[KeyGenerationOptions] = None,
                 validation_rules: Optional[KeyValidationRules] = None,
                 default_locale: str = DEFAULT_LOCALE,
                 key_similarity_threshold: float = KEY_SIMILARITY_THRESHOLD,
                 value_similarity_threshold: float = VALUE_SIMILARITY_THRESHOLD,
                 show_progress: bool = False):
        self.key_generator = KeyGenerator(generation_options)
        self.key_validator = KeyValidator(validation_rules)
        self.duplicate_detector = DuplicateDetector(
            key_similarity_threshold=key_similarity_threshold,
            value_similarity_threshold=value_similarity_threshold,
        )
        self.default_locale = default_locale
        self.show_progress = show_progress
        self.failures: List[BatchFailure] = []

        logger.info('KeyManager initialized with generation and validation options')

    @classmethod
    def from_config(cls, config) -> 'KeyManager':
        """Build a manager from an ``AppConfig``."""
        return cls(
            generation_options=config.generation_options(),
            validation_rules=config.validation_rules(),
            default_locale=config.source_locale,
            key_similarity_threshold=config.key_similarity_threshold,
            value_similarity_threshold=config.value_similarity_threshold,
            show_progress=config.log_to_console,
        )

    def process_text_for_key(self, text: str, locale: Optional[str] = None,
                             context: Optional[str] = None) -> ResolutionResult:
        """
        Generate, validate and de-duplicate a key for one piece of text.

        Args:
            text: The source-script text.
            locale: Locale whose store is checked for duplicates.
            context: Optional hint such as ``'btn'``.

        Returns:
            ResolutionResult: The generated key, the validation of the raw
            candidate, the combined duplicate check and the final key.
        """
        locale = locale or self.default_locale
        logger.debug("Processing text for key generation: %r", text)

        generated = self.key_generator.generate_key(text, context, ensure_unique=False)

        # Uniqueness is resolved below, with context, rather than by the validator.
        validation = self.key_validator.validate_key(generated.key, check_uniqueness=False)

        final_key = generated.key
        if not validation.is_valid:
            final_key = self.key_validator.normalize_key(final_key, ensure_unique=False)
            logger.info("Key normalized from %r to %r", generated.key, final_key)

        key_check = self.duplicate_detector.check_key_duplicate(final_key, locale)
        value_check = self.duplicate_detector.check_value_duplicate(text, locale)

        if value_check.is_duplicate:
            logger.info(
                "Text %r already stored under key %r in locale %s",
                text, value_check.existing_key, locale
            )

        if key_check.is_duplicate or self.key_validator.is_key_used(final_key):
            resolved_key = self._handle_key_duplicate(final_key, context, locale)
            logger.info("Key conflict resolved: %r -> %r", final_key, resolved_key)
            final_key = resolved_key

        self.key_validator.mark_key_as_used(final_key)

        generated.key = final_key
        duplicate_check = DuplicateCheckResult(
            is_duplicate=key_check.is_duplicate or value_check.is_duplicate,
            existing_key=key_check.existing_key or value_check.existing_key,
            similar_keys=list(dict.fromkeys(key_check.similar_keys + value_check.similar_keys)),
        )
        return ResolutionResult(
            generated_key=generated,
            validation=validation,
            duplicate_check=duplicate_check,
            final_key=final_key,
        )

    resolve = process_text_for_key

    def _is_taken(self, key: str, locale: str) -> bool:
        return self.key_validator.is_key_used(key) or self.duplicate_detector.check_key_duplicate(key, locale).is_duplicate

    def _handle_key_duplicate(self, key: str, context: Optional[str], locale: str) -> str:
        if context:
            contextual_key = self.duplicate_detector.generate_contextual_suffix(key, context)
            if not self.key_validator.validate_key(contextual_key, check_uniqueness=False).is_valid:
                contextual_key = self.key_validator.normalize_key(contextual_key, ensure_unique=False)
            if not self._is_taken(contextual_key, locale):
                return contextual_key

        counter = 1
        alternative_key = self.key_validator.numbered_key(key, counter)
        while self._is_taken(alternative_key, locale):
            counter += 1
            alternative_key = self.key_validator.numbered_key(key, counter)
        return alternative_key

    def generate_keys(self, matches: Sequence[Union[TextMatch, Mapping[str, Any]]],
                      locale: Optional[str] = None) -> List[GeneratedKey]:
        """
        Resolve keys for a batch of text matches, in order.

        A failure on one item never aborts the batch: the item falls back to
        an unvalidated (but still unique) synthesized key and the failure is
        appended to ``self.failures``.

        Args:
            matches: ``TextMatch`` records, or their dictionary form.
            locale: Locale checked for duplicates. Defaults to the source locale.

        Returns:
            List[GeneratedKey]: One key per match, in input order.

        Raises:
            TypeError: If ``matches`` is missing or not a list/tuple.
        """
        if matches is None:
            raise TypeError('Matches parameter is undefined. Please provide a list of text matches.')
        if not isinstance(matches, (list, tuple)):
            raise TypeError(f"Expected matches to be a list, but got: {type(matches).__name__}")

        logger.info("Generating keys for %d text matches", len(matches))
        failures_before = len(self.failures)
        results: List[GeneratedKey] = []

        for raw_match in tqdm(matches, desc='Resolving keys', unit='text', disable=not self.show_progress):
            try:
                match = raw_match if isinstance(raw_match, TextMatch) else TextMatch.from_dict(raw_match)
                resolution = self.process_text_for_key(match.text, locale, match.context)
                generated = resolution.generated_key
                generated.file_path = match.file_path or None
                generated.line_number = match.line_number
                generated.column_number = match.column_number
            except Exception as e:
                text, file_path, context = self._describe_match(raw_match)
                logger.warning("Failed to generate key for text %r: %s", text, e)
                self.failures.append(BatchFailure(text=text, file_path=file_path, error=str(e)))
                generated = self._fallback_key(text, context)
                generated.file_path = file_path
            results.append(generated)

        logger.info(
            "Generated %d keys (%d fell back to unvalidated keys)",
            len(results), len(self.failures) - failures_before
        )
        return results

    resolve_batch = generate_keys

    @staticmethod
    def _describe_match(raw_match) -> tuple:
        if isinstance(raw_match, TextMatch):
            return raw_match.text, raw_match.file_path or None, raw_match.context
        if isinstance(raw_match, Mapping):
            text = raw_match.get('text')
            return (
                text if isinstance(text, str) else '',
                raw_match.get('filePath', raw_match.get('file_path')),
                raw_match.get('context'),
            )
        return '', None, None

    def _fallback_key(self, text: str, context: Optional[str]) -> GeneratedKey:
        try:
            fallback = self.key_generator.generate_key(text, context, ensure_unique=False)
        except Exception as e:
            logger.warning("Fallback key generation failed for %r: %s", text, e)
            fallback = GeneratedKey(key=FALLBACK_KEY, original_text=text, confidence=0.0, context=context)

        base_key = fallback.key
        counter = 1
        while self.key_validator.is_key_used(fallback.key):
            fallback.key = f"{base_key}_{counter}"
            counter += 1
        self.key_validator.mark_key_as_used(fallback.key)
        return fallback

    def load_existing_translations(self, translation_data: Mapping[str, Mapping[str, str]]) -> None:
        """
        Seed every component with the keys already in the locale store.

        Args:
            translation_data: ``{locale: {key: value}}`` as read from disk.
        """
        self.duplicate_detector.load_translation_data(translation_data)

        all_keys: List[str] = []
        for locale_data in translation_data.values():
            all_keys.extend(locale_data.keys())

        self.key_validator.add_existing_keys(all_keys)
        self.key_generator.add_existing_keys(all_keys)
        logger.info("Loaded %d existing keys", len(all_keys))

    load_existing = load_existing_translations

    def add_translation_entry(self, entry: TranslationEntry) -> None:
        self.duplicate_detector.add_translation_entry(entry)
        self.key_validator.mark_key_as_used(entry.key)

    def validate_keys(self, keys: Sequence[str]) -> Dict[str, ValidationResult]:
        return {key: self.key_validator.validate_key(key) for key in keys}

    def get_duplicate_statistics(self) -> Dict[str, Dict[str, int]]:
        return self.duplicate_detector.get_duplicate_stats()

    def get_duplicate_values(self, locale: str) -> List[DuplicateValue]:
        return self.duplicate_detector.get_duplicate_values(locale)

    def generate_alternative_keys(self, text: str, context: Optional[str] = None,
                                  count: int = 3) -> List[GeneratedKey]:
        """
        Propose ``count`` candidate keys for ``text`` without registering any.

        The primary key comes first, then keys built with other common
        contexts, then numbered variants of the primary key.
        """
        primary = self.key_generator.preview_key(text, context)
        alternatives = [primary]

        for alternative_context in ALTERNATIVE_CONTEXTS:
            if len(alternatives) >= count:
                break
            if alternative_context == context:
                continue
            candidate = self.key_generator.preview_key(text, alternative_context)
            if all(existing.key != candidate.key for existing in alternatives):
                alternatives.append(candidate)

        while len(alternatives) < count:
            alternatives.append(GeneratedKey(
                key=f"{primary.key}_{len(alternatives)}",
                original_text=text,
                confidence=round(primary.confidence * NUMBERED_ALTERNATIVE_PENALTY, 4),
                context=context,
            ))

        return alternatives[:count]

    def suggest_consolidation(self, locale: str) -> List[ConsolidationSuggestion]:
        """
        Suggest a surviving key for every duplicate value group in ``locale``.

        Shorter keys are preferred, then keys without digits, then
        alphabetical order. Nothing is merged automatically.
        """
        suggestions = []
        for duplicate in self.get_duplicate_values(locale):
            ranked = sorted(
                duplicate.keys,
                key=lambda key: (len(key), any(char.isdigit() for char in key), key)
            )
            suggestions.append(ConsolidationSuggestion(
                value=duplicate.value,
                keys=list(duplicate.keys),
                suggested_key=ranked[0],
                confidence=CONSOLIDATION_CONFIDENCE,
            ))
        return suggestions

    def reset(self) -> None:
        """Clear all internal state so the next run starts from a clean slate."""
        self.key_generator.reset_used_keys()
        self.duplicate_detector.clear()
        self.key_validator.clear_used_keys()
        self.failures.clear()
        logger.info('KeyManager state reset')

    def get_statistics(self) -> Dict[str, Any]:
        used_keys = self.key_validator.get_used_keys()
        return {
            'total_processed_keys': len(used_keys),
            'duplicate_stats': self.get_duplicate_statistics(),
            'failed_items': len(self.failures),
        }
