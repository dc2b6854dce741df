"""
Batch email verification on top of the validation pipeline.
"""

import re

from composite_validator import CompositeEmailValidator
from interfaces import EmailValidatorProtocol
from validation_result import ValidationResult

# Newlines, commas, semicolons and whitespace all separate addresses
EMAIL_SEPARATORS = re.compile(r"[,;\s]+")


def parse_emails(text: str) -> list[str]:
    """
    Split free text into candidate addresses.

    Empty items are dropped and duplicates removed, keeping first-seen order.
    """
    seen: dict[str, None] = {}
    for item in EMAIL_SEPARATORS.split(text):
        item = item.strip(",; \t\r\n")
        if item:
            seen.setdefault(item, None)
    return list(seen)


class EmailVerificationService:
    """Verifies lists of addresses with a single validator."""

    def __init__(self, email_validator: EmailValidatorProtocol):
        self._email_validator = email_validator

    @property
    def email_validator(self) -> EmailValidatorProtocol:
        return self._email_validator

    def verify(self, emails: list[str]) -> list[ValidationResult]:
        """Validate each address; empty entries never reach the validator."""
        results = []
        for email in emails:
            raw_email = email if isinstance(email, str) else ""
            clean_email = raw_email.strip()
            if not clean_email:
                results.append(
                    ValidationResult.invalid_format(raw_email, "Email address cannot be empty")
                )
                continue
            results.append(self._email_validator.validate(clean_email))
        return results

    def verify_for_api(self, emails: list[str]) -> list[dict[str, str | None]]:
        """Validate and serialize for JSON responses."""
        return [result.to_dict() for result in self.verify(emails)]

    @classmethod
    def create_default(cls) -> "EmailVerificationService":
        return cls(CompositeEmailValidator.create_default())
