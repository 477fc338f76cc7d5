"""Unit tests for typed coursework errors."""

from uuid import uuid4

from app.core.exceptions import (
    CourseworkError, InvalidConfiguration, WrongWorkType, Forbidden, NotStarted,
    AlreadyEvaluated, AlreadyGraded, OutOfRange, MissingContent, MissingReason, NotFound,
)


def test_status_codes():
    assert Forbidden.status_code == 403
    assert NotFound.status_code == 404
    for error_cls in (
        InvalidConfiguration, WrongWorkType, NotStarted, AlreadyEvaluated,
        AlreadyGraded, OutOfRange, MissingContent, MissingReason,
    ):
        assert error_cls.status_code == 400


def test_codes_are_distinct():
    codes = {
        cls.code
        for cls in (
            InvalidConfiguration, WrongWorkType, Forbidden, NotStarted, AlreadyEvaluated,
            AlreadyGraded, OutOfRange, MissingReason, NotFound,
        )
    }
    assert len(codes) == 9


def test_default_message_used_when_none_given():
    error = MissingReason(field="reason")
    assert error.message == MissingReason.default_message
    assert str(error) == MissingReason.default_message


def test_to_dict_keeps_numbers_and_stringifies_ids():
    submission_id = uuid4()
    assert OutOfRange(field="score", value=25).to_dict() == {
        "code": "OUT_OF_RANGE",
        "message": OutOfRange.default_message,
        "field": "score",
        "value": 25,
    }
    detail = AlreadyGraded(field="submission_id", value=submission_id).to_dict()
    assert detail["value"] == str(submission_id)


def test_to_dict_omits_missing_field_and_value():
    assert CourseworkError("boom").to_dict() == {"code": "COURSEWORK_ERROR", "message": "boom"}
