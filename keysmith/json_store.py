import json
import logging
import os
import shutil
import tempfile
from typing import Dict, List, Mapping

import jsonschema

from keysmith.errors import FileSystemError, StoreStructureError
from keysmith.models import TranslationEntry

logger = logging.getLogger(__name__)

LOCALE_FILE_EXTENSION = '.json'
DEFAULT_FILE_MODE = 0o666

# A locale file is a flat JSON object whose values are all strings.
LOCALIZATION_SCHEMA = {
    "type": "object",
    "patternProperties": {
        "^.*$": {"type": "string"}
    },
    "additionalProperties": False
}


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _require_string_values(translations: Mapping[str, object], path: str) -> None:
    for key, value in translations.items():
        if not isinstance(value, str):
            raise StoreStructureError(
                f'Translation key "{key}" has non-string value: {type(value).__name__}', path
            )


class LocaleStore:
    """
    Reads and writes one ``<locale>.json`` file per locale.

    Files are written sorted by key with two-space indentation so that
    diffs stay deterministic. Writes go to a temporary file that replaces
    the target in one step, so a failed write leaves the old file intact.
    """

    def __init__(self, directory: str):
        self.directory = directory

    def file_path(self, locale: str) -> str:
        return os.path.join(self.directory, f"{locale}{LOCALE_FILE_EXTENSION}")

    def read(self, locale: str) -> Dict[str, str]:
        """
        Read a locale file.

        Args:
            locale (str): The locale code, e.g. ``'fa'``.

        Returns:
            Dict[str, str]: The key/value map. A missing file yields ``{}``.

        Raises:
            StoreStructureError: If the file is not a JSON object of
                string values. The message names the first offending key.
            FileSystemError: If the file exists but cannot be read.
        """
        path = self.file_path(locale)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            logger.info("Translation file not found, starting empty: %s", path)
            return {}
        except UnicodeDecodeError as e:
            raise StoreStructureError(f"Translation file '{path}' is not valid UTF-8: {e}", path) from e
        except OSError as e:
            raise FileSystemError.from_os_error('read translation file', path, e) from e

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise StoreStructureError(f"Translation file '{path}' is not valid JSON: {e}", path) from e

        if not isinstance(parsed, dict):
            raise StoreStructureError(f"Translation file '{path}' must contain a JSON object", path)
        _require_string_values(parsed, path)

        logger.debug("Read %d keys from %s", len(parsed), path)
        return parsed

    read_translation_file = read

    def write(self, locale: str, translations: Mapping[str, str]) -> None:
        """
        Write a locale file, replacing its previous content.

        Args:
            locale (str): The locale code.
            translations (Mapping[str, str]): The complete key/value map.

        Raises:
            StoreStructureError: If a value is not a string. Nothing is written.
            FileSystemError: If the directory or file cannot be written.
        """
        path = self.file_path(locale)
        _require_string_values(translations, path)

        content = json.dumps(dict(sorted(translations.items())), ensure_ascii=False, indent=2) + '\n'

        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=f".{locale}.", suffix='.tmp', dir=self.directory)
        except OSError as e:
            raise FileSystemError.from_os_error('prepare translation directory', self.directory, e) from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
            # mkstemp creates the file as 0600; keep the mode a plain open() would give.
            if os.path.exists(path):
                shutil.copymode(path, temp_path)
            else:
                os.chmod(temp_path, DEFAULT_FILE_MODE & ~_current_umask())
            os.replace(temp_path, path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise FileSystemError.from_os_error('write translation file', path, e) from e

        logger.info("Wrote %d keys to %s", len(translations), path)

    write_translation_file = write

    def update(self, locale: str, new_entries: Mapping[str, str]) -> Dict[str, str]:
        """Merge ``new_entries`` into the locale file; new values win. Returns the merged map."""
        translations = self.read(locale)
        translations.update(new_entries)
        self.write(locale, translations)
        logger.info("Updated translation file for locale %s with %d entries", locale, len(new_entries))
        return translations

    update_translation_file = update

    def add_translation_entry(self, entry: TranslationEntry) -> None:
        self.update(entry.locale, {entry.key: entry.value})

    def get_translation_keys(self, locale: str) -> List[str]:
        return list(self.read(locale).keys())

    def get_translation_values(self, locale: str) -> List[str]:
        return list(self.read(locale).values())

    def key_exists(self, locale: str, key: str) -> bool:
        return key in self.read(locale)

    def list_locales(self) -> List[str]:
        """Locale codes that currently have a file in the store directory."""
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FileSystemError.from_os_error('list translation directory', self.directory, e) from e

        return sorted(
            name[:-len(LOCALE_FILE_EXTENSION)]
            for name in names
            if name.endswith(LOCALE_FILE_EXTENSION)
            and not name.startswith('.')
            and os.path.isfile(os.path.join(self.directory, name))
        )

    def validate_structure(self, locale: str) -> Dict[str, object]:
        """
        Check that a locale file is a flat object of string values.

        A missing file is valid. Parse errors are reported, not raised.

        Returns:
            Dict[str, object]: ``{'is_valid': bool, 'errors': List[str]}``.
        """
        path = self.file_path(locale)
        errors: List[str] = []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                parsed = json.load(f)
        except FileNotFoundError:
            return {'is_valid': True, 'errors': []}
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return {'is_valid': False, 'errors': [f"JSON parsing error: {e}"]}
        except OSError as e:
            raise FileSystemError.from_os_error('read translation file', path, e) from e

        validator = jsonschema.Draft7Validator(LOCALIZATION_SCHEMA)
        for error in sorted(validator.iter_errors(parsed), key=lambda err: list(err.path)):
            if not error.path:
                errors.append('Translation file must contain a JSON object')
            else:
                key = error.path[0]
                errors.append(
                    f'Translation key "{key}" has non-string value: {type(parsed[key]).__name__}'
                )

        return {'is_valid': not errors, 'errors': errors}

    validate_translation_file = validate_structure
