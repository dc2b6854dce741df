"""
Validation result value object shared by every validator stage.
"""

from dataclasses import dataclass, replace
from enum import Enum


class ValidationStatus(str, Enum):
    """Outcome of a validation stage."""

    VALID = "valid"
    INVALID_FORMAT = "invalid_format"  # Syntax checker
    INVALID_TLD = "invalid_tld"  # Unrecognized top-level domain
    INVALID_MX = "invalid_mx"  # Domain cannot receive mail (or DNS unreachable)


@dataclass(frozen=True)
class ValidationResult:
    """
    Immutable result of validating one email address.

    `reason` explains every non-valid status. Valid results normally carry
    no reason; the MX address-record fallback attaches one to say why the
    domain was accepted without MX records.
    """

    email: str
    status: ValidationStatus
    reason: str | None = None

    @classmethod
    def valid(cls, email: str, reason: str | None = None) -> "ValidationResult":
        return cls(email, ValidationStatus.VALID, reason)

    @classmethod
    def invalid_format(cls, email: str, reason: str) -> "ValidationResult":
        return cls(email, ValidationStatus.INVALID_FORMAT, reason)

    @classmethod
    def invalid_tld(cls, email: str, reason: str) -> "ValidationResult":
        return cls(email, ValidationStatus.INVALID_TLD, reason)

    @classmethod
    def invalid_mx(cls, email: str, reason: str) -> "ValidationResult":
        return cls(email, ValidationStatus.INVALID_MX, reason)

    @property
    def is_valid(self) -> bool:
        return self.status == ValidationStatus.VALID

    def with_email(self, email: str) -> "ValidationResult":
        """Return the same verdict attributed to another address."""
        return replace(self, email=email)

    def to_dict(self) -> dict[str, str | None]:
        """Serialize for JSON responses."""
        return {
            "email": self.email,
            "status": self.status.value,
            "reason": self.reason,
        }
