import unittest

import pytest

from keysmith.key_validator import (
    INVALID_KEY,
    UNNAMED_KEY,
    KeyValidationRules,
    KeyValidator,
)

NORMALIZATION_SAMPLES = [
    "btn_save",
    "Save Button",
    "__Hello  World__",
    "123",
    "9",
    "class",
    "IF",
    "a",
    "_x_",
    "___",
    "a__b",
    "ذخیره",
    "user.profile-name",
    "x" * 150,
    "word_" * 40,
    "",
    None,
    42,
]


class TestValidateKey(unittest.TestCase):
    def setUp(self):
        self.validator = KeyValidator()

    def test_valid_key(self):
        result = self.validator.validate_key("profile_name")
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, [])

    def test_empty_and_non_string_keys(self):
        self.assertFalse(self.validator.validate_key("").is_valid)
        self.assertFalse(self.validator.validate_key(None).is_valid)

    def test_invalid_characters_suggest_sanitized_key(self):
        result = self.validator.validate_key("Save Button")
        self.assertFalse(result.is_valid)
        self.assertIn("save_button", result.suggestions)

    def test_only_digits(self):
        result = self.validator.validate_key("123")
        self.assertFalse(result.is_valid)
        self.assertIn("key_123", result.suggestions)

    def test_reserved_word(self):
        result = self.validator.validate_key("class")
        self.assertFalse(result.is_valid)
        self.assertIn("class_key", result.suggestions)

    def test_too_short(self):
        result = self.validator.validate_key("a")
        self.assertFalse(result.is_valid)
        self.assertIn("a_key", result.suggestions)

    def test_too_long_suggests_truncation(self):
        validator = KeyValidator(max_length=10)
        result = validator.validate_key("very_long_key_name")
        self.assertFalse(result.is_valid)
        self.assertIn("very_long", result.suggestions)

    def test_used_key_is_rejected_only_when_checking_uniqueness(self):
        self.validator.mark_key_as_used("save")
        result = self.validator.validate_key("save")
        self.assertFalse(result.is_valid)
        self.assertIn("save_1", result.suggestions)
        self.assertTrue(self.validator.validate_key("save", check_uniqueness=False).is_valid)

    def test_required_prefix_is_a_warning(self):
        validator = KeyValidator(require_prefix="app")
        result = validator.validate_key("profile_name")
        self.assertTrue(result.is_valid)
        self.assertIn("app_profile_name", result.suggestions)

    def test_abbreviated_prefix_suggestion(self):
        result = self.validator.validate_key("btn_save")
        self.assertTrue(result.is_valid)
        self.assertIn("button_save", result.suggestions)

    def test_suggestions_are_deduplicated(self):
        result = self.validator.validate_key("_a_")
        self.assertEqual(len(result.suggestions), len(set(result.suggestions)))


class TestNormalizeKey(unittest.TestCase):
    def setUp(self):
        self.validator = KeyValidator()

    def test_examples(self):
        self.assertEqual(self.validator.normalize_key("__Hello  World__"), "hello_world")
        self.assertEqual(self.validator.normalize_key("123"), "key_123")
        self.assertEqual(self.validator.normalize_key("class"), "class_key")
        self.assertEqual(self.validator.normalize_key("___"), UNNAMED_KEY)
        self.assertEqual(self.validator.normalize_key("_x_"), "x_key")
        self.assertEqual(self.validator.normalize_key(None), INVALID_KEY)
        self.assertEqual(self.validator.normalize_key(""), INVALID_KEY)

    def test_used_key_gets_numbered(self):
        self.validator.mark_key_as_used("save")
        self.validator.mark_key_as_used("save_1")
        self.assertEqual(self.validator.normalize_key("save"), "save_2")
        self.assertEqual(self.validator.normalize_key("save", ensure_unique=False), "save")

    def test_normalize_does_not_mark_keys_as_used(self):
        self.validator.normalize_key("profile_name")
        self.assertFalse(self.validator.is_key_used("profile_name"))

    def test_max_length_is_respected(self):
        validator = KeyValidator(max_length=10)
        self.assertEqual(validator.normalize_key("very_long_key_name_here"), "very_long")

    def test_required_affixes_fit_in_max_length(self):
        validator = KeyValidator(max_length=20, require_prefix="app", require_suffix="label")
        key = validator.normalize_key("account_settings_page_title")
        self.assertTrue(key.startswith("app_"))
        self.assertTrue(key.endswith("_label"))
        self.assertLessEqual(len(key), 20)

    def test_numbered_key_keeps_required_suffix(self):
        validator = KeyValidator(require_suffix="label")
        self.assertEqual(validator.numbered_key("save_label", 2), "save_2_label")
        self.assertEqual(validator.numbered_key("save", 1), "save_1")


@pytest.mark.parametrize("raw", NORMALIZATION_SAMPLES)
def test_normalize_is_idempotent(raw):
    validator = KeyValidator()
    once = validator.normalize_key(raw)
    assert validator.normalize_key(once) == once


@pytest.mark.parametrize("raw", NORMALIZATION_SAMPLES)
def test_normalized_keys_are_valid(raw):
    validator = KeyValidator()
    assert validator.validate_key(validator.normalize_key(raw)).is_valid


@pytest.mark.parametrize("raw", NORMALIZATION_SAMPLES)
def test_normalized_keys_are_valid_with_affix_rules(raw):
    validator = KeyValidator(max_length=30, require_prefix="app", require_suffix="text")
    once = validator.normalize_key(raw)
    assert validator.validate_key(once).is_valid
    assert validator.normalize_key(once) == once
    assert once.startswith("app_") and once.endswith("_text")


def test_registry_lifecycle():
    validator = KeyValidator()
    validator.add_existing_keys(["b_key", "a_key"])
    validator.mark_key_as_used("c_key")
    assert validator.get_used_keys() == ["a_key", "b_key", "c_key"]
    validator.reset_used_keys()
    assert validator.get_used_keys() == []


def test_rules_are_copied():
    validator = KeyValidator()
    rules = validator.get_rules()
    rules.reserved_words.append("custom")
    assert "custom" not in validator.rules.reserved_words

    validator.update_rules(max_length=40)
    assert validator.get_rules().max_length == 40


def test_invalid_length_bounds_are_rejected():
    with pytest.raises(ValueError):
        KeyValidationRules(min_length=5, max_length=3)
