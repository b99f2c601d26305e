import json
import logging
import os

import pytest

from keysmith.app_config import AppConfig


@pytest.fixture(autouse=True)
def quiet_keysmith_logger():
    """Keep log output from leaking between tests through handlers set up by load_app_config."""
    logger = logging.getLogger('keysmith')
    saved_handlers = list(logger.handlers)
    saved_propagate = logger.propagate
    saved_level = logger.level
    logger.propagate = True
    yield
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers = saved_handlers
    logger.propagate = saved_propagate
    logger.setLevel(saved_level)


@pytest.fixture
def locale_dir(tmp_path):
    """An empty translations directory."""
    directory = tmp_path / 'locales'
    directory.mkdir()
    return str(directory)


@pytest.fixture
def write_locale(locale_dir):
    """Write a locale file the same way the store does and return its path."""
    def _write(locale, translations):
        path = os.path.join(locale_dir, f"{locale}.json")
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(dict(sorted(translations.items())), f, ensure_ascii=False, indent=2)
            f.write('\n')
        return path
    return _write


@pytest.fixture
def make_config(locale_dir):
    """Build an AppConfig pointing at the temporary translations directory."""
    def _make(**overrides):
        values = dict(
            project_root=os.path.dirname(locale_dir),
            translations_dir=locale_dir,
            source_locale='fa',
            target_locale='en',
            key_strategy='semantic',
            max_key_length=50,
            use_context=True,
            key_prefix=None,
            create_backups=True,
            dry_run=False,
            backup_keep=10,
            key_similarity_threshold=0.7,
            value_similarity_threshold=0.8,
            validation_min_length=2,
            validation_max_length=100,
            require_prefix=None,
            require_suffix=None,
            log_level='INFO',
            log_file_path=os.path.join(os.path.dirname(locale_dir), 'keysmith.log'),
            log_to_console=False,
        )
        values.update(overrides)
        return AppConfig(**values)
    return _make
