"""
Capability contracts shared by the validator stages.

The orchestrator depends on these protocols only, never on concrete
validator classes.
"""

from typing import Protocol, runtime_checkable

from validation_result import ValidationResult


@runtime_checkable
class EmailValidatorProtocol(Protocol):
    """Anything that can validate a full email address."""

    def validate(self, email: str) -> ValidationResult: ...


@runtime_checkable
class DomainValidatorProtocol(Protocol):
    """Anything that can validate an already-extracted domain part."""

    def validate_domain(self, domain: str, full_email: str) -> ValidationResult: ...
