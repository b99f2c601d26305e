"""Consistency checks between the source and target locale files."""
import codecs
import re
from collections import Counter
from typing import List, Mapping, Tuple

# Interpolation placeholders such as {name} or {0}.
PLACEHOLDER_PATTERN = re.compile(r'\{([^{}]+)\}')

# UTF-8 text decoded as latin-1/cp1252 shows up as 'Ã¼', 'Ã¤' and the like.
MOJIBAKE_PATTERN = re.compile(r'Ã[\x80-\xff]')

REPLACEMENT_CHARACTER = chr(0xFFFD)

UTF16_BOMS = (codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)


def check_key_coverage(source: Mapping[str, str], target: Mapping[str, str]) -> Tuple[List[str], List[str]]:
    """
    Compare the keys of a target locale map against the source locale map.

    Args:
        source: The source locale's key/value map.
        target: The target locale's key/value map.

    Returns:
        A tuple ``(missing, orphaned)``, each sorted:
        - missing: keys the source has and the target lacks.
        - orphaned: keys the target has and the source no longer does.
    """
    missing = sorted(source.keys() - target.keys())
    orphaned = sorted(target.keys() - source.keys())
    return missing, orphaned


def placeholder_signature(value: str) -> Counter:
    return Counter(PLACEHOLDER_PATTERN.findall(value))


def check_placeholder_parity(source_value: str, target_value: str) -> bool:
    """True when both values use the same placeholders equally often, in any order."""
    return placeholder_signature(source_value) == placeholder_signature(target_value)


def find_placeholder_mismatches(source: Mapping[str, str], target: Mapping[str, str]) -> List[str]:
    """Keys present in both locales whose placeholders differ."""
    return sorted(
        key for key in source.keys() & target.keys()
        if not check_placeholder_parity(source[key], target[key])
    )


def _line_numbers(content: str, predicate) -> str:
    return ', '.join(
        str(number) for number, line in enumerate(content.splitlines(), 1) if predicate(line)
    )


def check_encoding_and_mojibake(file_path: str) -> List[str]:
    """
    Inspect the raw bytes of a locale file.

    Locale files are UTF-8 without a byte order mark. Reported problems:
    a UTF-16 encoding, a UTF-8 BOM, bytes that do not decode as UTF-8, and
    the line numbers of double-encoded text or U+FFFD replacement characters.

    Args:
        file_path: The locale file to check.

    Returns:
        A list of error messages. An empty list means the file is clean.
    """
    try:
        with open(file_path, 'rb') as f:
            raw = f.read()
    except OSError as e:
        return [f"Could not read file '{file_path}'. Reason: {e}"]

    if raw.startswith(UTF16_BOMS):
        return [f"File '{file_path}' is UTF-16 encoded; locale files must be UTF-8."]

    errors = []
    if raw.startswith(codecs.BOM_UTF8):
        errors.append(f"File '{file_path}' starts with a UTF-8 byte order mark, which JSON parsers reject.")
        raw = raw[len(codecs.BOM_UTF8):]

    try:
        content = raw.decode('utf-8')
    except UnicodeDecodeError as e:
        errors.append(f"File '{file_path}' is not a valid UTF-8 file (invalid byte at offset {e.start}).")
        return errors

    mojibake_lines = _line_numbers(content, MOJIBAKE_PATTERN.search)
    if mojibake_lines:
        errors.append(f"Potential mojibake detected in '{file_path}' on line(s) {mojibake_lines}.")

    replacement_lines = _line_numbers(content, lambda line: REPLACEMENT_CHARACTER in line)
    if replacement_lines:
        errors.append(
            f"File '{file_path}' contains the Unicode replacement character (U+FFFD) "
            f"on line(s) {replacement_lines}."
        )

    return errors
