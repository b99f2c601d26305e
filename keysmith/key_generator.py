import hashlib
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set

from keysmith.models import GeneratedKey
from keysmith.text_utils import (
    compact_context,
    normalize_source_text,
    slugify,
    truncate_key,
)
from keysmith.transliteration import Transliterator

logger = logging.getLogger(__name__)

FALLBACK_KEY = 'untranslated_text'
KEY_STRATEGIES = ('semantic', 'hash', 'sequential')

# Confidence heuristics. The score is a quality hint, not a probability.
BASE_CONFIDENCE = 0.5
KNOWN_PHRASE_BONUS = 0.3
STRUCTURED_KEY_BONUS = 0.1
WEAK_KEY_PENALTY = 0.2
MIN_STRUCTURED_KEY_LENGTH = 3

MAX_SUGGESTIONS = 3
HASH_DIGEST_LENGTH = 8


@dataclass
class KeyGenerationOptions:
    """Options for turning source text into candidate keys."""
    max_length: int = 50
    use_context: bool = True
    prefix: Optional[str] = None
    strategy: str = 'semantic'


def calculate_confidence(original_text: str, generated_key: str, transliterator: Transliterator) -> float:
    """
    Score how meaningful a generated key is likely to be.

    Args:
        original_text: The source text the key was generated from.
        generated_key: The generated key.
        transliterator: Used to tell whether the text is a known phrase.

    Returns:
        float: A score clamped to [0, 1].
    """
    confidence = BASE_CONFIDENCE

    if transliterator.is_known_phrase(normalize_source_text(original_text)):
        confidence += KNOWN_PHRASE_BONUS

    if '_' in generated_key and len(generated_key) > MIN_STRUCTURED_KEY_LENGTH:
        confidence += STRUCTURED_KEY_BONUS

    if len(generated_key) < MIN_STRUCTURED_KEY_LENGTH or generated_key == FALLBACK_KEY:
        confidence -= WEAK_KEY_PENALTY

    return round(max(0.0, min(1.0, confidence)), 4)


class KeyGenerator:
    """Creates English translation keys from Persian/Arabic text."""

    def __init__(self, options: Optional[KeyGenerationOptions] = None,
                 transliterator: Optional[Transliterator] = None):
        self.options = options or KeyGenerationOptions()
        if self.options.strategy not in KEY_STRATEGIES:
            raise ValueError(
                f"Unknown key generation strategy '{self.options.strategy}'. "
                f"Expected one of: {', '.join(KEY_STRATEGIES)}"
            )
        self.transliterator = transliterator or Transliterator()
        self._used_keys: Set[str] = set()
        self._sequence = 0

    def generate_key(self, text: str, context: Optional[str] = None, ensure_unique: bool = True) -> GeneratedKey:
        """
        Generate a key for a snippet of source text.

        Args:
            text: The source-script text.
            context: Optional hint such as ``'btn'`` or ``'title'``.
            ensure_unique: Suffix ``_1``, ``_2``... against keys this
                generator has already produced. The key manager turns this
                off because it owns run-wide uniqueness.

        Returns:
            GeneratedKey: The key with its confidence and alternatives.
        """
        logger.debug("Generating key for text: %r", text)

        key = self.synthesize(text, context)
        if ensure_unique:
            key = self._ensure_uniqueness(key)

        confidence = calculate_confidence(text, key, self.transliterator)
        logger.debug("Generated key %r with confidence %.2f", key, confidence)

        return GeneratedKey(
            key=key,
            original_text=text,
            confidence=confidence,
            suggestions=self.generate_alternatives(text, context),
            context=context,
        )

    def preview_key(self, text: str, context: Optional[str] = None) -> GeneratedKey:
        """Generate a key without reserving it or advancing the sequential counter."""
        sequence = self._sequence
        try:
            return self.generate_key(text, context, ensure_unique=False)
        finally:
            self._sequence = sequence

    def synthesize(self, text: str, context: Optional[str] = None) -> str:
        """
        Return the candidate key for ``text`` without touching the used set.

        Under the ``sequential`` strategy each call takes the next number.
        """
        normalized = normalize_source_text(text)

        if self.options.strategy == 'hash':
            body = self._hash_body(normalized, context)
        elif self.options.strategy == 'sequential':
            body = self._sequential_body(context)
        else:
            body = slugify(self.transliterator.transliterate(normalized))

        return self._apply_affixes(body, context)

    def _apply_affixes(self, key: str, context: Optional[str]) -> str:
        if self.options.use_context and self.options.strategy == 'semantic':
            context_key = compact_context(context)
            if context_key:
                key = f"{context_key}_{key}" if key else context_key

        if self.options.prefix:
            key = f"{self.options.prefix}_{key}" if key else self.options.prefix

        if not key:
            key = FALLBACK_KEY

        if len(key) > self.options.max_length:
            key = truncate_key(key, self.options.max_length)

        return key

    def _hash_body(self, normalized_text: str, context: Optional[str]) -> str:
        digest = hashlib.sha1(normalized_text.encode('utf-8')).hexdigest()[:HASH_DIGEST_LENGTH]
        label = compact_context(context) if self.options.use_context else ''
        return f"{label or 'text'}_{digest}"

    def _sequential_body(self, context: Optional[str]) -> str:
        self._sequence += 1
        label = compact_context(context) if self.options.use_context else ''
        return f"{label or 'text'}_{self._sequence}"

    def _ensure_uniqueness(self, key: str) -> str:
        unique_key = key
        counter = 1
        while unique_key in self._used_keys:
            unique_key = f"{key}_{counter}"
            counter += 1
        self._used_keys.add(unique_key)
        return unique_key

    def generate_alternatives(self, text: str, context: Optional[str] = None) -> List[str]:
        """
        Offer up to three other plausible keys for ``text``.

        Returns the plain transliteration without context, the
        transliteration behind the given context, and an initials
        abbreviation when the text has several words.
        """
        alternatives: List[str] = []
        normalized = normalize_source_text(text)
        plain = slugify(self.transliterator.transliterate(normalized))

        if plain:
            alternatives.append(plain)

        if context and plain:
            context_key = compact_context(context)
            if context_key:
                alternatives.append(f"{context_key}_{plain}")

        words = normalized.split()
        if len(words) > 1:
            initials = [slugify(self.transliterator.transliterate(word))[:1] for word in words]
            abbreviated = '_'.join(initial for initial in initials if initial)
            if len(abbreviated) > 1:
                alternatives.append(abbreviated)

        unique: List[str] = []
        for alternative in alternatives:
            if alternative not in unique:
                unique.append(alternative)
        return unique[:MAX_SUGGESTIONS]

    def add_existing_keys(self, keys: Iterable[str]) -> None:
        self._used_keys.update(keys)

    def reset_used_keys(self) -> None:
        """Forget every key produced so far so a new run starts clean."""
        self._used_keys.clear()
        self._sequence = 0
