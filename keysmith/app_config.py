"""Application configuration for the key resolution engine."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

import yaml
from dotenv import load_dotenv

from keysmith.key_generator import KEY_STRATEGIES, KeyGenerationOptions
from keysmith.key_validator import KeyValidationRules
from keysmith.logging_config import setup_logger

DEFAULT_SOURCE_LOCALE = 'fa'
DEFAULT_TARGET_LOCALE = 'en'
DEFAULT_STRATEGY = 'semantic'
DEFAULT_MAX_KEY_LENGTH = 50
MIN_KEY_LENGTH_LIMIT = 10
MAX_KEY_LENGTH_LIMIT = 200
DEFAULT_TRANSLATIONS_DIR = 'locales'
DEFAULT_BACKUP_KEEP = 10

TRUE_VALUES = ('1', 'true', 'yes', 'on')


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    translations_dir: str

    # Locales
    source_locale: str
    target_locale: str

    # Key generation
    key_strategy: str
    max_key_length: int
    use_context: bool
    key_prefix: Optional[str]

    # File processing
    create_backups: bool
    dry_run: bool
    backup_keep: int

    # Duplicate detection
    key_similarity_threshold: float
    value_similarity_threshold: float

    # Key validation
    validation_min_length: int
    validation_max_length: int
    require_prefix: Optional[str]
    require_suffix: Optional[str]

    # Logging
    log_level: str
    log_file_path: str
    log_to_console: bool

    @property
    def locales(self) -> List[str]:
        return [self.source_locale, self.target_locale]

    def generation_options(self) -> KeyGenerationOptions:
        return KeyGenerationOptions(
            max_length=self.max_key_length,
            use_context=self.use_context,
            prefix=self.key_prefix,
            strategy=self.key_strategy,
        )

    def validation_rules(self) -> KeyValidationRules:
        return KeyValidationRules(
            min_length=self.validation_min_length,
            max_length=self.validation_max_length,
            require_prefix=self.require_prefix,
            require_suffix=self.require_suffix,
        )


def _compute_project_root() -> str:
    """Compute the project root directory."""
    module_dir = os.path.dirname(os.path.realpath(__file__))
    return os.path.abspath(os.path.join(module_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> None:
    dotenv_path = os.path.join(project_root, '.env')
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load the YAML configuration file. Any problem falls back to defaults with a warning."""
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('KEYSMITH_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set KEYSMITH_CONFIG_FILE.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name)
    return section if isinstance(section, dict) else {}


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    log_config = _section(config, 'logging')
    log_level_str = str(log_config.get('log_level', 'INFO')).upper()
    log_file_path = log_config.get('log_file_path', 'logs/keysmith.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUE_VALUES


def _resolve_strategy(strategy: Any, logger: logging.Logger) -> str:
    if strategy in KEY_STRATEGIES:
        return strategy
    logger.warning(
        "Unknown key generation strategy %r, expected one of %s. Falling back to '%s'.",
        strategy, ', '.join(KEY_STRATEGIES), DEFAULT_STRATEGY
    )
    return DEFAULT_STRATEGY


def _resolve_max_key_length(raw_value: Any, logger: logging.Logger) -> int:
    try:
        max_length = int(raw_value)
    except (TypeError, ValueError):
        logger.warning("Invalid max_length %r, using %d", raw_value, DEFAULT_MAX_KEY_LENGTH)
        return DEFAULT_MAX_KEY_LENGTH

    clamped = max(MIN_KEY_LENGTH_LIMIT, min(MAX_KEY_LENGTH_LIMIT, max_length))
    if clamped != max_length:
        logger.warning(
            "max_length %d is outside %d-%d, using %d",
            max_length, MIN_KEY_LENGTH_LIMIT, MAX_KEY_LENGTH_LIMIT, clamped
        )
    return clamped


def load_app_config() -> AppConfig:
    """
    Load application configuration from the YAML file and environment variables.

    ``KEYSMITH_TRANSLATIONS_DIR``, ``KEYSMITH_MAX_KEY_LENGTH`` and
    ``KEYSMITH_CREATE_BACKUPS`` override the matching file settings.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()

    _load_dotenv_files(project_root)

    config = _load_yaml_config(project_root)

    logger = _setup_logger_from_config(config)

    locales = _section(config, 'locales')
    key_generation = _section(config, 'key_generation')
    file_processing = _section(config, 'file_processing')
    translation_files = _section(config, 'translation_files')
    backups = _section(config, 'backups')
    duplicate_detection = _section(config, 'duplicate_detection')
    validation = _section(config, 'validation')
    log_config = _section(config, 'logging')

    strategy = _resolve_strategy(key_generation.get('strategy', DEFAULT_STRATEGY), logger)
    max_key_length = _resolve_max_key_length(
        os.environ.get('KEYSMITH_MAX_KEY_LENGTH', key_generation.get('max_length', DEFAULT_MAX_KEY_LENGTH)),
        logger
    )
    translations_dir = os.environ.get(
        'KEYSMITH_TRANSLATIONS_DIR', translation_files.get('directory', DEFAULT_TRANSLATIONS_DIR)
    )
    create_backups = _env_bool('KEYSMITH_CREATE_BACKUPS', bool(file_processing.get('create_backups', True)))

    logger.info(
        "Configuration loaded: locales %s -> %s, strategy %s, translations in %s",
        locales.get('source', DEFAULT_SOURCE_LOCALE), locales.get('target', DEFAULT_TARGET_LOCALE),
        strategy, translations_dir
    )

    return AppConfig(
        project_root=project_root,
        translations_dir=translations_dir,
        source_locale=locales.get('source', DEFAULT_SOURCE_LOCALE),
        target_locale=locales.get('target', DEFAULT_TARGET_LOCALE),
        key_strategy=strategy,
        max_key_length=max_key_length,
        use_context=bool(key_generation.get('use_context', True)),
        key_prefix=key_generation.get('prefix'),
        create_backups=create_backups,
        dry_run=bool(file_processing.get('dry_run', False)),
        backup_keep=int(backups.get('keep', DEFAULT_BACKUP_KEEP)),
        key_similarity_threshold=float(duplicate_detection.get('key_similarity_threshold', 0.7)),
        value_similarity_threshold=float(duplicate_detection.get('value_similarity_threshold', 0.8)),
        validation_min_length=int(validation.get('min_length', 2)),
        validation_max_length=int(validation.get('max_length', 100)),
        require_prefix=validation.get('require_prefix'),
        require_suffix=validation.get('require_suffix'),
        log_level=str(log_config.get('log_level', 'INFO')).upper(),
        log_file_path=log_config.get('log_file_path', 'logs/keysmith.log'),
        log_to_console=bool(log_config.get('log_to_console', True)),
    )
