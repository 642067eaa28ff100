"""
Field validation rules for the licence application form.

Every rule is a pure function ``(value, context) -> str | None``: ``None`` accepts the value,
a string rejects it with a human-readable reason. ``context`` is whatever aggregate the field
belongs to (usually the whole draft), so conditional rules can look at other fields without
depending on declaration order.

Rules are composed per field with ``check_field``; only the first failing rule of a field is
reported, and callers collect errors across fields instead of stopping at the first one.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Any, Callable, Iterable, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

Rule = Callable[[Any, Any], Optional[str]]

MOBILE_PATTERN = re.compile(r"^01[0-9]{9}$")
NID_LENGTHS = (10, 13, 17)
BIN_LENGTH = 13
TIN_LENGTH = 12
MIN_ACHIEVEMENT_YEAR = 1900
GENERAL_APPLICANT_TYPE = "General"


class FieldError(BaseModel):
    field: str
    message: str

    model_config = {"frozen": True}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def required(message: str = "This field is required") -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        return message if _is_blank(value) else None

    return rule


def digits(*lengths: int, message: str) -> Rule:
    """ASCII-digit string whose length is one of ``lengths``."""

    def rule(value: Any, context: Any) -> Optional[str]:
        if not isinstance(value, str):
            return message
        text = value.strip()
        if not (text.isascii() and text.isdecimal()) or len(text) not in lengths:
            return message
        return None

    return rule


def at_most(length: int, message: Optional[str] = None) -> Rule:
    """Text no longer than ``length`` characters once trimmed; blank values are left to ``required``."""

    def rule(value: Any, context: Any) -> Optional[str]:
        if isinstance(value, str) and len(value.strip()) > length:
            return message or f"Must be at most {length} characters"
        return None

    return rule


def matches(pattern: re.Pattern, message: str) -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        if not isinstance(value, str) or not pattern.match(value.strip()):
            return message
        return None

    return rule


def email_address(message: str = "Invalid email address") -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        if not isinstance(value, str):
            return message
        try:
            validate_email(value.strip(), check_deliverability=False)
        except EmailNotValidError:
            return message
        return None

    return rule


def year_between(minimum: int = MIN_ACHIEVEMENT_YEAR, maximum: Optional[int] = None) -> Rule:
    """Integer year in [minimum, maximum]; maximum defaults to the current year at call time."""

    def rule(value: Any, context: Any) -> Optional[str]:
        upper = maximum if maximum is not None else date.today().year
        if isinstance(value, bool) or not isinstance(value, int):
            return "Year must be a number"
        if value < minimum or value > upper:
            return f"Year must be between {minimum} and {upper}"
        return None

    return rule


def at_least(minimum: int, message: Optional[str] = None) -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < minimum:
            return message or f"Must be at least {minimum}"
        return None

    return rule


def must_be_true(message: str) -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        return None if value is True else message

    return rule


def a_date(message: str = "A valid date is required") -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        return None if isinstance(value, date) else message

    return rule


def in_the_past(message: str = "Date must be in the past") -> Rule:
    def rule(value: Any, context: Any) -> Optional[str]:
        if isinstance(value, date) and value >= date.today():
            return message
        return None

    return rule


def when(condition: Callable[[Any], bool], *rules: Rule) -> Rule:
    """Apply ``rules`` only when ``condition(context)`` holds; otherwise accept anything."""

    def rule(value: Any, context: Any) -> Optional[str]:
        if not condition(context):
            return None
        for inner in rules:
            message = inner(value, context)
            if message:
                return message
        return None

    return rule


def requires_business_id(context: Any) -> bool:
    """BIN is mandatory for every applicant type except General."""
    general = getattr(context, "general_info", context)
    applicant_type = (getattr(general, "applicant_type", None) or GENERAL_APPLICANT_TYPE).strip()
    return applicant_type != GENERAL_APPLICANT_TYPE


def check_field(field: str, value: Any, rules: Iterable[Rule], context: Any = None) -> Optional[FieldError]:
    for rule in rules:
        message = rule(value, context)
        if message:
            return FieldError(field=field, message=message)
    return None


def collect_errors(checks: Iterable[tuple[str, Any, Iterable[Rule]]], context: Any = None) -> list[FieldError]:
    """Run (field, value, rules) triples and keep every failing field."""
    errors: list[FieldError] = []
    for field, value, rules in checks:
        error = check_field(field, value, rules, context)
        if error is not None:
            errors.append(error)
    return errors


# Per-field rule sets shared by the draft and the profile form
NID_RULES = (required("NID is required"), digits(*NID_LENGTHS, message="NID must be 10, 13 or 17 digits"))
TIN_RULES = (required("TIN is required"), digits(TIN_LENGTH, message="TIN must be 12 digits"))
BIN_RULES = (
    when(
        requires_business_id,
        required("BIN is required"),
        digits(BIN_LENGTH, message="BIN must be 13 digits"),
    ),
)
MOBILE_RULES = (required("Mobile number is required"), matches(MOBILE_PATTERN, "Invalid mobile number"))
EMAIL_RULES = (required("Email is required"), email_address())
