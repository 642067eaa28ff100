"""
Field rule tests.
Run from project root: python -m pytest tests/test_validators.py -v
"""
import unittest
from datetime import date, timedelta

from services.draft import GeneralInfo
from services.validators import (
    BIN_RULES,
    MOBILE_RULES,
    NID_RULES,
    TIN_RULES,
    a_date,
    at_least,
    at_most,
    check_field,
    collect_errors,
    email_address,
    in_the_past,
    must_be_true,
    required,
    year_between,
)


class TestFieldRules(unittest.TestCase):
    def test_required_rejects_blank_and_none(self):
        rule = required("Full Name is required")
        self.assertEqual(rule("", None), "Full Name is required")
        self.assertEqual(rule("   ", None), "Full Name is required")
        self.assertEqual(rule(None, None), "Full Name is required")
        self.assertIsNone(rule("John", None))

    def test_nid_accepts_10_13_17_digits(self):
        for nid in ("1234567890", "1234567890123", "12345678901234567"):
            self.assertIsNone(check_field("nid", nid, NID_RULES), nid)
        for nid in ("123456789", "12345678901", "12345678901234", "12345abcde"):
            error = check_field("nid", nid, NID_RULES)
            self.assertIsNotNone(error, nid)
            self.assertEqual(error.field, "nid")

    def test_tin_exactly_12_digits(self):
        self.assertIsNone(check_field("tin", "123456789012", TIN_RULES))
        self.assertEqual(check_field("tin", "1234567890", TIN_RULES).message, "TIN must be 12 digits")
        self.assertEqual(check_field("tin", "", TIN_RULES).message, "TIN is required")

    def test_mobile_prefix(self):
        self.assertIsNone(check_field("m", "01712345678", MOBILE_RULES))
        self.assertEqual(check_field("m", "02712345678", MOBILE_RULES).message, "Invalid mobile number")
        self.assertEqual(check_field("m", "0171234567", MOBILE_RULES).message, "Invalid mobile number")

    def test_numeric_rules_take_ascii_digits_only(self):
        self.assertIsNotNone(check_field("nid", "\u0661" * 10, NID_RULES))
        self.assertIsNotNone(check_field("nid", "\u0969" * 13, NID_RULES))
        self.assertIsNotNone(check_field("tin", "\u00b2" * 12, TIN_RULES))
        self.assertIsNotNone(check_field("m", "01" + "\u0969" * 9, MOBILE_RULES))
        self.assertIsNotNone(check_field("m", "01" + "\uff11" * 9, MOBILE_RULES))

    def test_at_most(self):
        rule = at_most(5)
        self.assertIsNone(rule("abcde", None))
        self.assertIsNone(rule("  abcde  ", None))
        self.assertEqual(rule("abcdef", None), "Must be at most 5 characters")
        self.assertIsNone(rule(None, None))

    def test_email(self):
        rule = email_address()
        self.assertIsNone(rule("john@example.com", None))
        self.assertEqual(rule("not-an-email", None), "Invalid email address")
        self.assertEqual(rule(None, None), "Invalid email address")

    def test_year_bounds(self):
        rule = year_between()
        self.assertIsNone(rule(1900, None))
        self.assertIsNone(rule(date.today().year, None))
        self.assertIsNotNone(rule(1899, None))
        self.assertIsNotNone(rule(date.today().year + 1, None))
        self.assertEqual(rule("2015", None), "Year must be a number")
        self.assertEqual(rule(True, None), "Year must be a number")

    def test_minimum_amount(self):
        rule = at_least(5000)
        self.assertIsNone(rule(5000, None))
        self.assertIsNotNone(rule(4999, None))
        self.assertIsNotNone(rule(None, None))

    def test_must_be_true_only_accepts_true(self):
        rule = must_be_true("You must agree to the declaration")
        self.assertIsNone(rule(True, None))
        self.assertIsNotNone(rule(False, None))
        self.assertIsNotNone(rule("true", None))

    def test_dates(self):
        self.assertIsNone(a_date()(date(1990, 1, 1), None))
        self.assertIsNotNone(a_date()(None, None))
        self.assertIsNotNone(in_the_past()(date.today() + timedelta(days=1), None))
        self.assertIsNone(in_the_past()(date(1990, 1, 1), None))

    def test_first_failing_rule_only(self):
        error = check_field("tin", "", TIN_RULES)
        self.assertEqual(error.message, "TIN is required")

    def test_collect_errors_keeps_every_field(self):
        errors = collect_errors([
            ("a", "", (required(),)),
            ("b", "x", (required(),)),
            ("c", None, (required(),)),
        ])
        self.assertEqual([e.field for e in errors], ["a", "c"])


class TestBusinessIdCondition(unittest.TestCase):
    def test_general_applicant_may_leave_bin_empty(self):
        context = GeneralInfo(applicant_type="General")
        self.assertIsNone(check_field("bin", "", BIN_RULES, context))
        self.assertIsNone(check_field("bin", None, BIN_RULES, context))
        # Not checked against the 13-digit rule either
        self.assertIsNone(check_field("bin", "123", BIN_RULES, context))

    def test_other_applicant_types_require_13_digits(self):
        context = GeneralInfo(applicant_type="Company")
        self.assertEqual(check_field("bin", "", BIN_RULES, context).message, "BIN is required")
        self.assertEqual(check_field("bin", "123", BIN_RULES, context).message, "BIN must be 13 digits")
        self.assertIsNone(check_field("bin", "1234567890123", BIN_RULES, context))


if __name__ == "__main__":
    unittest.main()
