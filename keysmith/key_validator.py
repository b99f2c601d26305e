import logging
import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Pattern, Set

from keysmith.models import ValidationResult
from keysmith.text_utils import sanitize_identifier, truncate_key

logger = logging.getLogger(__name__)

ONLY_UNDERSCORES = r'^_+$'
ONLY_DIGITS = r'^[0-9]+$'
REPEATED_UNDERSCORES = r'__+'
EDGE_UNDERSCORE = r'^_|_$'

RESERVED_WORDS = [
    'undefined', 'null', 'true', 'false', 'function', 'var', 'let', 'const',
    'if', 'else', 'for', 'while', 'do', 'switch', 'case', 'default', 'break',
    'continue', 'return', 'try', 'catch', 'finally', 'throw', 'new', 'this',
    'super', 'class', 'extends', 'import', 'export', 'from', 'as',
]

PAD_SUFFIXES = ('key', 'text', 'label', 'msg')
GENERIC_FRAGMENTS = ('text', 'label', 'msg', 'str', 'val')
ABBREVIATED_PREFIXES = {'btn_': 'button_', 'txt_': 'text_', 'lbl_': 'label_'}
INVALID_KEY = 'invalid_key'
UNNAMED_KEY = 'unnamed_key'

# normalize_key repeats its repair pipeline until the key stops changing.
MAX_REPAIR_PASSES = 5


def _compile(pattern) -> Pattern:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


@dataclass
class KeyValidationRules:
    """Naming rules every persisted translation key must satisfy."""
    max_length: int = 100
    min_length: int = 2
    allowed_characters: Pattern = field(default_factory=lambda: re.compile(r'^[a-z0-9_]+$'))
    forbidden_patterns: List[Pattern] = field(default_factory=lambda: [
        re.compile(ONLY_UNDERSCORES),
        re.compile(ONLY_DIGITS),
        re.compile(REPEATED_UNDERSCORES),
        re.compile(EDGE_UNDERSCORE),
    ])
    reserved_words: List[str] = field(default_factory=lambda: list(RESERVED_WORDS))
    require_prefix: Optional[str] = None
    require_suffix: Optional[str] = None
    case_sensitive: bool = False

    def __post_init__(self):
        self.allowed_characters = _compile(self.allowed_characters)
        self.forbidden_patterns = [_compile(pattern) for pattern in self.forbidden_patterns]
        if self.min_length < 1 or self.max_length < self.min_length:
            raise ValueError(
                f"Invalid key length bounds: min_length={self.min_length}, max_length={self.max_length}"
            )


DEFAULT_KEY_RULES = KeyValidationRules()


class KeyValidator:
    """
    Validates translation keys and repairs keys that break the rules.

    The validator also owns the set of keys already in use during a run.
    Seed it with ``add_existing_keys``, record new keys with
    ``mark_key_as_used`` and call ``clear_used_keys`` before a new run.
    """

    def __init__(self, rules: Optional[KeyValidationRules] = None, **overrides):
        base_rules = rules or DEFAULT_KEY_RULES
        fields = {
            'forbidden_patterns': list(base_rules.forbidden_patterns),
            'reserved_words': list(base_rules.reserved_words),
        }
        fields.update(overrides)
        self.rules = replace(base_rules, **fields)
        self._used_keys: Set[str] = set()

    def validate_key(self, key, check_uniqueness: bool = True) -> ValidationResult:
        """
        Validate a translation key against all rules.

        Args:
            key: The key to validate.
            check_uniqueness: Also fail keys that are already in use.

        Returns:
            ValidationResult: Errors, warnings and machine-derived suggestions.
        """
        errors: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []

        if not key or not isinstance(key, str):
            errors.append('Key must be a non-empty string')
            return ValidationResult(is_valid=False, errors=errors, warnings=warnings, suggestions=suggestions)

        rules = self.rules

        if len(key) < rules.min_length:
            errors.append(f"Key must be at least {rules.min_length} characters long")
            suggestions.append(self._pad_key(key))

        if len(key) > rules.max_length:
            errors.append(f"Key must not exceed {rules.max_length} characters")
            suggestions.append(truncate_key(key, rules.max_length))

        if not rules.allowed_characters.search(key):
            errors.append(
                'Key contains invalid characters. Only lowercase letters, numbers, and underscores are allowed'
            )
            suggestions.append(sanitize_identifier(key.lower()) or UNNAMED_KEY)

        for pattern in rules.forbidden_patterns:
            if pattern.search(key):
                errors.append(f"Key matches forbidden pattern: {pattern.pattern}")
                suggestions.append(self._fix_forbidden_pattern(key, pattern))

        if self._is_reserved(key):
            errors.append(f'Key "{key}" is a reserved word')
            suggestions.append(f"{key}_key")

        if rules.require_prefix and not key.startswith(rules.require_prefix):
            warnings.append(f'Key should start with prefix "{rules.require_prefix}"')
            suggestions.append(f"{rules.require_prefix}_{key}")

        if rules.require_suffix and not key.endswith(rules.require_suffix):
            warnings.append(f'Key should end with suffix "{rules.require_suffix}"')
            suggestions.append(f"{key}_{rules.require_suffix}")

        if check_uniqueness and key in self._used_keys:
            errors.append(f'Key "{key}" is already in use')
            suggestions.append(self.generate_unique_key(key))

        self._add_semantic_warnings(key, warnings, suggestions)

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=list(dict.fromkeys(suggestions)),
        )

    def normalize_key(self, key, ensure_unique: bool = True) -> str:
        """
        Rewrite a key so that it passes ``validate_key``.

        Applies lowercasing, character sanitization, forbidden-pattern repair,
        length repair, reserved-word repair and prefix/suffix injection, then
        appends ``_1``, ``_2``... until the key is unused. The key is not
        marked as used.

        Args:
            key: The key to normalize. Non-strings become ``'invalid_key'``.
            ensure_unique: Skip the uniqueness loop when False.

        Returns:
            str: A key that satisfies the active rules.
        """
        normalized = key if isinstance(key, str) and key else INVALID_KEY

        for _ in range(MAX_REPAIR_PASSES):
            repaired = self._repair(normalized)
            if repaired == normalized:
                break
            normalized = repaired

        if ensure_unique:
            normalized = self.ensure_uniqueness(normalized)

        return normalized

    def _repair(self, key: str) -> str:
        rules = self.rules

        repaired = sanitize_identifier(key.lower()) or UNNAMED_KEY

        for pattern in rules.forbidden_patterns:
            if pattern.search(repaired):
                repaired = self._fix_forbidden_pattern(repaired, pattern)

        if len(repaired) > rules.max_length:
            repaired = truncate_key(repaired, rules.max_length)

        if len(repaired) < rules.min_length:
            repaired = self._pad_key(repaired)

        if self._is_reserved(repaired):
            repaired = f"{repaired}_key"

        return self._apply_required_affixes(repaired)

    def _apply_required_affixes(self, key: str) -> str:
        prefix = self.rules.require_prefix
        suffix = self.rules.require_suffix
        needs_prefix = bool(prefix) and not key.startswith(prefix)
        needs_suffix = bool(suffix) and not key.endswith(suffix)
        if not needs_prefix and not needs_suffix:
            return key

        budget = self.rules.max_length
        if needs_prefix:
            budget -= len(prefix) + 1
        if needs_suffix:
            budget -= len(suffix) + 1
        if 0 < budget < len(key):
            key = truncate_key(key, budget)

        if needs_prefix:
            key = f"{prefix}_{key}"
        if needs_suffix:
            key = f"{key}_{suffix}"
        return key

    def _fix_forbidden_pattern(self, key: str, pattern: Pattern) -> str:
        source = pattern.pattern
        if source == ONLY_UNDERSCORES:
            return UNNAMED_KEY
        if source == ONLY_DIGITS:
            return f"key_{key}"
        if source == REPEATED_UNDERSCORES:
            return re.sub(r'__+', '_', key)
        if source == EDGE_UNDERSCORE:
            return key.strip('_') or UNNAMED_KEY
        return pattern.sub('_', key)

    def _pad_key(self, key: str) -> str:
        if len(key) >= self.rules.min_length:
            return key

        base = key or 'key'
        for suffix in PAD_SUFFIXES:
            padded = f"{base}_{suffix}"
            if len(padded) >= self.rules.min_length:
                return padded

        padded = base
        counter = 1
        while len(padded) < self.rules.min_length:
            padded += f"_{counter}"
            counter += 1
        return padded

    def _is_reserved(self, key: str) -> bool:
        if self.rules.case_sensitive:
            return key in self.rules.reserved_words
        return key.lower() in {word.lower() for word in self.rules.reserved_words}

    def numbered_key(self, key: str, counter: int) -> str:
        # The counter goes before a required suffix so the key keeps its suffix.
        suffix = self.rules.require_suffix
        counter_token = f"_{counter}"
        if suffix and key.endswith(f"_{suffix}"):
            base, tail = key[:-(len(suffix) + 1)], f"_{suffix}"
        else:
            base, tail = key, ''

        budget = self.rules.max_length - len(counter_token) - len(tail)
        if 0 < budget < len(base):
            base = truncate_key(base, budget)
        return f"{base}{counter_token}{tail}"

    def ensure_uniqueness(self, key: str) -> str:
        """Return ``key`` if unused, otherwise the first free ``key_<n>``."""
        if key not in self._used_keys:
            return key
        return self.generate_unique_key(key)

    def generate_unique_key(self, base_key: str) -> str:
        counter = 1
        unique_key = self.numbered_key(base_key, counter)
        while unique_key in self._used_keys:
            counter += 1
            unique_key = self.numbered_key(base_key, counter)
        return unique_key

    def _add_semantic_warnings(self, key: str, warnings: List[str], suggestions: List[str]) -> None:
        if len(key) < 4:
            warnings.append('Key is very short and may not be descriptive enough')

        if any(fragment in key for fragment in GENERIC_FRAGMENTS):
            warnings.append('Key appears to be generic. Consider using more descriptive names')

        if '_' in key and any(len(part) <= 2 for part in key.split('_')):
            warnings.append('Key contains very short parts that may be unclear')

        for short, expanded in ABBREVIATED_PREFIXES.items():
            if key.startswith(short):
                suggestions.append(expanded + key[len(short):])

    # --- Used key registry ---

    def add_existing_keys(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        self._used_keys.update(keys)
        logger.debug("Added %d existing keys to validator", len(keys))

    def mark_key_as_used(self, key: str) -> None:
        self._used_keys.add(key)

    def is_key_used(self, key: str) -> bool:
        return key in self._used_keys

    def get_used_keys(self) -> List[str]:
        return sorted(self._used_keys)

    def clear_used_keys(self) -> None:
        self._used_keys.clear()
        logger.debug('Cleared used keys from validator')

    reset_used_keys = clear_used_keys

    def update_rules(self, **changes) -> None:
        """Replace individual rule fields, e.g. ``update_rules(max_length=40)``."""
        self.rules = replace(self.rules, **changes)
        logger.debug("Updated validation rules: %s", ', '.join(sorted(changes)))

    def get_rules(self) -> KeyValidationRules:
        return replace(
            self.rules,
            forbidden_patterns=list(self.rules.forbidden_patterns),
            reserved_words=list(self.rules.reserved_words),
        )
