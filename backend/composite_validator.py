"""
Fail-fast email validation pipeline: syntax -> TLD -> MX.
"""

from interfaces import EmailValidatorProtocol
from mx_validator import MxValidator
from syntax_validator import SyntaxValidator
from tld_validator import TldValidator
from validation_result import ValidationResult


class CompositeEmailValidator:
    """
    Runs the three validator stages in order and returns the first failure.

    Later stages are never invoked for input an earlier stage rejected, so
    syntactically doomed addresses never cost a DNS round-trip.
    """

    def __init__(
        self,
        syntax_validator: EmailValidatorProtocol,
        tld_validator: EmailValidatorProtocol,
        mx_validator: EmailValidatorProtocol,
    ):
        self._syntax_validator = syntax_validator
        self._tld_validator = tld_validator
        self._mx_validator = mx_validator

    def validate(self, email: str) -> ValidationResult:
        """
        Validate an address through every stage, stopping at the first failure.

        When every stage passes, the MX stage's valid result is returned so
        an explanatory reason (address-record fallback) is preserved.
        """
        result = ValidationResult.valid(email)
        for validator in (self._syntax_validator, self._tld_validator, self._mx_validator):
            result = validator.validate(email)
            if not result.is_valid:
                return result

        return result

    @property
    def validators(self) -> dict[str, EmailValidatorProtocol]:
        """Constituent stages, keyed by name."""
        return {
            "syntax": self._syntax_validator,
            "tld": self._tld_validator,
            "mx": self._mx_validator,
        }

    @classmethod
    def create_default(cls) -> "CompositeEmailValidator":
        """Build a pipeline with default validators and cache adapters."""
        return cls(SyntaxValidator(), TldValidator(), MxValidator())
