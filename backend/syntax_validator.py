"""
Structural email syntax validation.

Pure and deterministic: no network, no cache. Local-part and domain-part
rules are checked first so the reason names the exact problem, then the
whole address gets a second opinion from email-validator.
"""

from email_validator import EmailNotValidError, validate_email

from validation_result import ValidationResult

MAX_LOCAL_PART_LENGTH = 64
MAX_DOMAIN_PART_LENGTH = 253


class SyntaxValidator:
    """Validates the structure of local and domain parts of an address."""

    def validate(self, email: str) -> ValidationResult:
        """Validate a full email address."""
        if not email.strip():
            return ValidationResult.invalid_format(email, "Email address cannot be empty")

        if email.count("@") != 1:
            return ValidationResult.invalid_format(
                email, "Email must contain exactly one @ symbol"
            )

        local_part, domain_part = email.split("@", 1)
        return self.validate_parts(local_part, domain_part, email)

    def validate_parts(
        self, local_part: str, domain_part: str, full_email: str
    ) -> ValidationResult:
        """
        Validate an address that has already been split on "@".

        Args:
            local_part: Part before the @
            domain_part: Part after the @
            full_email: Original address, reported in the result

        Returns:
            ValidationResult with status valid or invalid_format
        """
        reason = self._check_local_part(local_part)
        if reason:
            return ValidationResult.invalid_format(full_email, reason)

        reason = self._check_domain_part(domain_part)
        if reason:
            return ValidationResult.invalid_format(full_email, reason)

        # Second opinion. TLD legitimacy and deliverability belong to later stages,
        # but special-use names (RFC 6761, e.g. "mail.local") are still rejected here.
        try:
            validate_email(full_email, check_deliverability=False, globally_deliverable=False)
        except EmailNotValidError as e:
            return ValidationResult.invalid_format(
                full_email, f"Email does not match the standard address format: {e}"
            )

        return ValidationResult.valid(full_email)

    @staticmethod
    def _check_local_part(local_part: str) -> str | None:
        """Return a reason if the local part is malformed, else None."""
        if not local_part:
            return "Local part of the email cannot be empty"
        if len(local_part) > MAX_LOCAL_PART_LENGTH:
            return f"Local part of the email cannot exceed {MAX_LOCAL_PART_LENGTH} characters"
        if ".." in local_part:
            return "Local part cannot contain consecutive dots"
        if local_part.startswith(".") or local_part.endswith("."):
            return "Local part cannot start or end with a dot"
        return None

    @staticmethod
    def _check_domain_part(domain_part: str) -> str | None:
        """Return a reason if the domain part is malformed, else None."""
        if not domain_part:
            return "Domain part of the email cannot be empty"
        if len(domain_part) > MAX_DOMAIN_PART_LENGTH:
            return f"Domain part of the email cannot exceed {MAX_DOMAIN_PART_LENGTH} characters"
        if ".." in domain_part:
            return "Domain part cannot contain consecutive dots"
        if domain_part.startswith(".") or domain_part.endswith("."):
            return "Domain part cannot start or end with a dot"
        if "." not in domain_part:
            return "Domain part must contain at least one dot"
        return None
