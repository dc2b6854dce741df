"""
Tests for the fail-fast validation pipeline.
"""

from unittest.mock import MagicMock, patch

import pytest

from composite_validator import CompositeEmailValidator
from interfaces import EmailValidatorProtocol
from validation_result import ValidationResult, ValidationStatus

EMAIL = "user@example.com"


def stage(result: ValidationResult) -> MagicMock:
    validator = MagicMock()
    validator.validate.return_value = result
    return validator


@pytest.fixture
def passing_stages() -> tuple[MagicMock, MagicMock, MagicMock]:
    return (
        stage(ValidationResult.valid(EMAIL)),
        stage(ValidationResult.valid(EMAIL)),
        stage(ValidationResult.valid(EMAIL)),
    )


class TestFailFast:
    def test_all_stages_pass(self, passing_stages) -> None:
        syntax, tld, mx = passing_stages
        result = CompositeEmailValidator(syntax, tld, mx).validate(EMAIL)

        assert result == ValidationResult.valid(EMAIL)
        syntax.validate.assert_called_once_with(EMAIL)
        tld.validate.assert_called_once_with(EMAIL)
        mx.validate.assert_called_once_with(EMAIL)

    def test_syntax_failure_stops_pipeline(self, passing_stages) -> None:
        _, tld, mx = passing_stages
        syntax = stage(ValidationResult.invalid_format(EMAIL, "bad syntax"))

        result = CompositeEmailValidator(syntax, tld, mx).validate(EMAIL)

        assert result.status == ValidationStatus.INVALID_FORMAT
        tld.validate.assert_not_called()
        mx.validate.assert_not_called()

    def test_tld_failure_skips_mx(self, passing_stages) -> None:
        syntax, _, mx = passing_stages
        tld = stage(ValidationResult.invalid_tld(EMAIL, "unknown TLD"))

        result = CompositeEmailValidator(syntax, tld, mx).validate(EMAIL)

        assert result.status == ValidationStatus.INVALID_TLD
        assert result.reason == "unknown TLD"
        mx.validate.assert_not_called()

    def test_mx_failure_is_returned(self, passing_stages) -> None:
        syntax, tld, _ = passing_stages
        mx = stage(ValidationResult.invalid_mx(EMAIL, "no MX"))

        result = CompositeEmailValidator(syntax, tld, mx).validate(EMAIL)

        assert result.status == ValidationStatus.INVALID_MX

    def test_mx_valid_reason_is_preserved(self, passing_stages) -> None:
        syntax, tld, _ = passing_stages
        mx = stage(ValidationResult.valid(EMAIL, "A record fallback"))

        result = CompositeEmailValidator(syntax, tld, mx).validate(EMAIL)

        assert result.is_valid
        assert result.reason == "A record fallback"


def test_real_stages_with_doomed_syntax_never_reach_dns() -> None:
    """End-to-end: a malformed address costs no TLD or DNS work."""
    from syntax_validator import SyntaxValidator

    tld = MagicMock()
    mx = MagicMock()
    pipeline = CompositeEmailValidator(SyntaxValidator(), tld, mx)

    result = pipeline.validate("user@@double.com")

    assert result.status == ValidationStatus.INVALID_FORMAT
    tld.validate.assert_not_called()
    mx.validate.assert_not_called()


def test_idempotent(passing_stages) -> None:
    pipeline = CompositeEmailValidator(*passing_stages)
    assert pipeline.validate(EMAIL) == pipeline.validate(EMAIL)


def test_exposes_stages(passing_stages) -> None:
    syntax, tld, mx = passing_stages
    validators = CompositeEmailValidator(syntax, tld, mx).validators

    assert validators == {"syntax": syntax, "tld": tld, "mx": mx}


def test_satisfies_validator_protocol(passing_stages) -> None:
    assert isinstance(CompositeEmailValidator(*passing_stages), EmailValidatorProtocol)


def test_create_default_wires_default_stages() -> None:
    with (
        patch("composite_validator.SyntaxValidator") as syntax_cls,
        patch("composite_validator.TldValidator") as tld_cls,
        patch("composite_validator.MxValidator") as mx_cls,
    ):
        pipeline = CompositeEmailValidator.create_default()

    assert pipeline.validators == {
        "syntax": syntax_cls.return_value,
        "tld": tld_cls.return_value,
        "mx": mx_cls.return_value,
    }
