"""Text helpers shared by the key generator, validator and duplicate detection."""
import re
from typing import Optional

# Arabic-script Unicode blocks: Arabic, Arabic Supplement, Arabic Extended-A,
# Arabic Presentation Forms-A and -B.
ARABIC_SCRIPT_RANGES = r'\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF'

_DISALLOWED_SOURCE_CHARS = re.compile(rf'[^{ARABIC_SCRIPT_RANGES}A-Za-z0-9_\s]')
_WHITESPACE_RUN = re.compile(r'\s+')
_UNDERSCORE_RUN = re.compile(r'_{2,}')

# Persian (U+06F0..U+06F9) and Arabic-Indic (U+0660..U+0669) digits to ASCII.
_DIGIT_TRANSLATION = str.maketrans(
    '۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩',
    '01234567890123456789',
)


def normalize_source_text(text: Optional[str]) -> str:
    """
    Prepare source-script text for transliteration.

    Trims, collapses whitespace, converts Persian and Arabic-Indic digits to
    ASCII digits and strips everything that is not an Arabic-script letter,
    a Latin letter, a digit, an underscore or whitespace.

    Args:
        text (Optional[str]): The raw text found in the source file.

    Returns:
        str: The normalized text.
    """
    if not text:
        return ''
    normalized = _WHITESPACE_RUN.sub(' ', text.strip())
    normalized = normalized.translate(_DIGIT_TRANSLATION)
    return _DISALLOWED_SOURCE_CHARS.sub('', normalized)


def normalize_comparison_value(value: Optional[str]) -> str:
    """
    Normalize a translation value for duplicate comparison.

    Two values are the same only if they are equal after this function.

    Args:
        value (Optional[str]): A translation value.

    Returns:
        str: Lowercased, whitespace-collapsed value without punctuation.
    """
    if value is None:
        return ''
    normalized = _WHITESPACE_RUN.sub(' ', value.strip().lower())
    return _DISALLOWED_SOURCE_CHARS.sub('', normalized)


def slugify(text: str) -> str:
    """Turn transliterated text into a ``lower_snake_case`` identifier."""
    slug = re.sub(r'[^a-z0-9\s]', '', text.lower())
    slug = _WHITESPACE_RUN.sub('_', slug)
    slug = _UNDERSCORE_RUN.sub('_', slug)
    return slug.strip('_')


def sanitize_identifier(text: str) -> str:
    """Replace characters outside ``[a-z0-9_]`` with ``_`` and tidy underscores."""
    sanitized = re.sub(r'[^a-z0-9_]', '_', text)
    sanitized = _UNDERSCORE_RUN.sub('_', sanitized)
    return sanitized.strip('_')


def compact_context(context: Optional[str]) -> str:
    """Reduce a context hint to a bare ``[a-z0-9]`` token (``'Btn-Primary'`` -> ``'btnprimary'``)."""
    if not context:
        return ''
    return re.sub(r'[^a-z0-9]', '', context.lower())


def truncate_key(key: str, max_length: int) -> str:
    """
    Shorten a key to ``max_length`` while keeping whole words where possible.

    Whole ``_``-delimited segments are kept while they fit. If room is left
    for part of the next segment, an abbreviated prefix of it is appended.
    Single-segment keys are cut directly.

    Args:
        key (str): The key to shorten.
        max_length (int): The maximum allowed length.

    Returns:
        str: A key of at most ``max_length`` characters.
    """
    if len(key) <= max_length:
        return key

    parts = [part for part in key.split('_') if part]
    if len(parts) <= 1:
        return key[:max_length]

    result = ''
    for part in parts:
        separator = 1 if result else 0
        if len(result) + separator + len(part) <= max_length:
            result = f"{result}_{part}" if result else part
        else:
            remaining = max_length - len(result) - separator
            if remaining > 0:
                abbreviated = part[:remaining]
                result = f"{result}_{abbreviated}" if result else abbreviated
            break

    return result or key[:max_length]
