import unittest

from intake_reconciliation.exceptions import LinkValidationError
from intake_reconciliation.utils.key_builders import (
    create_composite_keys,
    create_name_dob_key,
    create_slot_key
)
from intake_reconciliation.utils.normalizers import (
    names_overlap,
    normalize_email,
    normalize_name,
    normalize_phone,
    normalize_time,
    strip_source_tag
)
from intake_reconciliation.utils.validators import (
    sanitize_filter_value,
    validate_appointment_id,
    validate_form_id,
    validate_pocketbase_id
)


class TestNormalizeName(unittest.TestCase):
    """Test name normalization, especially accents and source tags."""

    def test_accent_removal(self):
        """Accents and diacritical marks are removed."""
        self.assertEqual(normalize_name("François"), "francois")
        self.assertEqual(normalize_name("Müller"), "muller")
        self.assertEqual(normalize_name("Niccolò"), "niccolo")
        self.assertEqual(normalize_name("É. Dürr"), normalize_name("e. durr"))

    def test_case_insensitive(self):
        self.assertEqual(normalize_name("JEAN DUPONT"), "jean dupont")
        self.assertEqual(normalize_name("JoSé"), "jose")

    def test_source_tag_removed(self):
        """Booking-source prefixes are stripped in every spelling."""
        self.assertEqual(normalize_name("[OD] - Jean Dupont"), "jean dupont")
        self.assertEqual(normalize_name("[od]Jean Dupont"), "jean dupont")
        self.assertEqual(normalize_name("[Od]- Jean Dupont"), "jean dupont")
        self.assertEqual(normalize_name("[OD] - [OD] Jean Dupont"), "jean dupont")

    def test_tag_only_at_start(self):
        self.assertEqual(normalize_name("Jean [OD] Dupont"), "jean [od] dupont")

    def test_whitespace_collapsed(self):
        self.assertEqual(normalize_name("  Jean   Dupont  "), "jean dupont")
        self.assertEqual(normalize_name("Jean\tDupont"), "jean dupont")

    def test_idempotent(self):
        for raw in ["[OD] - François  Müller ", "É. Dürr", "  [xx]-Anna", "plain"]:
            once = normalize_name(raw)
            self.assertEqual(normalize_name(once), once)

    def test_empty_and_none(self):
        self.assertEqual(normalize_name(""), "")
        self.assertEqual(normalize_name(None), "")
        self.assertEqual(normalize_name("   "), "")

    def test_strip_source_tag_keeps_case(self):
        self.assertEqual(strip_source_tag("[OD] - Jean Dupont"), "Jean Dupont")
        self.assertEqual(strip_source_tag(None), "")


class TestNormalizePhone(unittest.TestCase):
    """Test Swiss phone number normalization."""

    def test_equivalent_forms(self):
        self.assertEqual(normalize_phone("0041791234567"), "791234567")
        self.assertEqual(normalize_phone("+41791234567"), "791234567")
        self.assertEqual(normalize_phone("0791234567"), "791234567")
        self.assertEqual(normalize_phone("+41 79 123 45 67"), "791234567")
        self.assertEqual(normalize_phone("079 123 45 67"), "791234567")
        self.assertEqual(normalize_phone("791234567"), "791234567")

    def test_keeps_last_nine_digits(self):
        self.assertEqual(normalize_phone("0033612345678"), "612345678")

    def test_short_numbers_unchanged(self):
        self.assertEqual(normalize_phone("1234"), "1234")

    def test_empty_and_none(self):
        self.assertEqual(normalize_phone(""), "")
        self.assertEqual(normalize_phone(None), "")
        self.assertEqual(normalize_phone("n/a"), "")


class TestOtherNormalizers(unittest.TestCase):

    def test_normalize_email(self):
        self.assertEqual(normalize_email("  Jean@X.com "), "jean@x.com")
        self.assertEqual(normalize_email(None), "")

    def test_normalize_time(self):
        self.assertEqual(normalize_time("9:05"), "09:05")
        self.assertEqual(normalize_time("14:30:00"), "14:30")
        self.assertEqual(normalize_time("14h30"), "14:30")
        self.assertEqual(normalize_time(" morning "), "morning")
        self.assertEqual(normalize_time(None), "")

    def test_names_overlap(self):
        self.assertTrue(names_overlap("jean dupont", "jean dupont"))
        self.assertTrue(names_overlap("dupont", "jean dupont"))
        self.assertTrue(names_overlap("jean dupont", "dupont"))
        self.assertFalse(names_overlap("jean dupont", "marie curie"))
        self.assertFalse(names_overlap("", "jean dupont"))


class TestKeyBuilders(unittest.TestCase):

    def test_slot_key(self):
        self.assertEqual(create_slot_key("2026-02-20", "9:05"), "2026-02-20|09:05")
        self.assertEqual(create_slot_key("2026-02-20", ""), "")
        self.assertEqual(create_slot_key(None, "09:05"), "")

    def test_name_dob_key(self):
        self.assertEqual(create_name_dob_key("[OD] - Jean Dupont", "1985-03-15"), "jean dupont|1985-03-15")
        self.assertEqual(create_name_dob_key("Jean Dupont", ""), "")

    def test_composite_keys_mark_missing_fields(self):
        keys = create_composite_keys("Jean Dupont", "", "079 123 45 67", "", "", "")
        self.assertEqual(keys['appointment'], "")
        self.assertEqual(keys['email'], "")
        self.assertEqual(keys['phone'], "791234567")
        self.assertEqual(keys['name_dob'], "")
        self.assertEqual(keys['name'], "jean dupont")


class TestValidators(unittest.TestCase):

    def test_valid_ids_returned(self):
        self.assertEqual(validate_appointment_id("abc_123-XYZ"), "abc_123-XYZ")
        self.assertEqual(validate_form_id("f1"), "f1")
        self.assertEqual(validate_pocketbase_id("abcdefghij12345"), "abcdefghij12345")

    def test_invalid_ids_rejected(self):
        for bad in ["", None, "a b", "x'; drop", "a" * 1025]:
            with self.assertRaises(LinkValidationError):
                validate_appointment_id(bad)
        with self.assertRaises(LinkValidationError):
            validate_pocketbase_id("ABCDEFGHIJ12345")
        with self.assertRaises(LinkValidationError):
            validate_pocketbase_id("short")

    def test_validation_error_is_value_error(self):
        with self.assertRaises(ValueError):
            validate_form_id("not valid")

    def test_sanitize_filter_value(self):
        self.assertEqual(sanitize_filter_value("ev'1\\"), "ev1")


if __name__ == '__main__':
    unittest.main()
