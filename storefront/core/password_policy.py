"""
Password policy evaluation.

Scores a candidate password against five rules, one point each:
minimum length, uppercase letter, lowercase letter, digit and special
character. The result drives both the strength meter shown to users and the
acceptance gate used by registration, password reset and admin creation.

Pure functions only - no I/O, safe to call anywhere.
"""

import re
from dataclasses import dataclass
from typing import Literal

MIN_LENGTH = 8
MIN_ACCEPTABLE_SCORE = 3

RULE_MIN_LENGTH = "min_length"
RULE_UPPERCASE = "uppercase"
RULE_LOWERCASE = "lowercase"
RULE_DIGIT = "digit"
RULE_SPECIAL = "special"

StrengthLabel = Literal["weak", "medium", "strong"]

# Ordered: missing-rule messages are reported in this order
_RULES: tuple[tuple[str, re.Pattern[str] | None, str], ...] = (
    (RULE_MIN_LENGTH, None, "Mínimo de 8 caracteres"),
    (RULE_UPPERCASE, re.compile(r"[A-Z]"), "Uma letra maiúscula"),
    (RULE_LOWERCASE, re.compile(r"[a-z]"), "Uma letra minúscula"),
    (RULE_DIGIT, re.compile(r"[0-9]"), "Um número"),
    (
        RULE_SPECIAL,
        re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]"),
        "Um caractere especial (!@#$%^&*...)",
    ),
)


@dataclass(frozen=True)
class PasswordEvaluation:
    """
    Outcome of evaluating a password.

    Attributes:
        score: Number of satisfied rules (0-5)
        satisfied_rules: Names of the rules the password meets
        missing_rule_messages: Localized description of each unmet rule
        strength_label: "weak" (0-2), "medium" (3-4) or "strong" (5)
    """

    score: int
    satisfied_rules: frozenset[str]
    missing_rule_messages: list[str]
    strength_label: StrengthLabel

    @property
    def is_acceptable(self) -> bool:
        """Minimum length is mandatory; beyond that, any three rules suffice."""
        return RULE_MIN_LENGTH in self.satisfied_rules and self.score >= MIN_ACCEPTABLE_SCORE


def _strength_for(score: int) -> StrengthLabel:
    if score <= 2:
        return "weak"
    if score <= 4:
        return "medium"
    return "strong"


def evaluate(password: str) -> PasswordEvaluation:
    """
    Score a password against the policy rules.

    Args:
        password: Candidate password (plain text)

    Returns:
        PasswordEvaluation with score, satisfied rules and feedback

    Example:
        >>> evaluate("Abc12345!").strength_label
        'strong'
        >>> evaluate("abc").missing_rule_messages[0]
        'Mínimo de 8 caracteres'
    """
    satisfied: set[str] = set()
    missing: list[str] = []

    for name, pattern, message in _RULES:
        if pattern is None:
            ok = len(password) >= MIN_LENGTH
        else:
            ok = pattern.search(password) is not None

        if ok:
            satisfied.add(name)
        else:
            missing.append(message)

    score = len(satisfied)
    return PasswordEvaluation(
        score=score,
        satisfied_rules=frozenset(satisfied),
        missing_rule_messages=missing,
        strength_label=_strength_for(score),
    )


def is_acceptable(password: str) -> bool:
    """Return True when the password may be stored (length >= 8 and score >= 3)."""
    return evaluate(password).is_acceptable
