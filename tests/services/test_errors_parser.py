"""Errors Parser — verifies the string-code dialect.

Tests cover:
    - Every known code maps to its documented (code, http_code, message)
    - Unknown strings, unknown exceptions and structured errors map to 500
    - Validation failures map to 4000/400 with errors
    - Wire body carries code/message/errors only, None fields omitted
    - Strings and exceptions are logged through the context logger
"""

import logging
from types import SimpleNamespace

import pytest

from restbind.core.action_errors import (
    ActionError, CodedError, ErrorOptions, ParamsValidationError,
)
from restbind.services.error_classifier import ErrorMeta
from restbind.services.errors_parser import ErrorsParser


@pytest.fixture
def parser():
    return ErrorsParser()


@pytest.mark.parametrize("error, expected", [
    ("UNAUTHORIZED", (401, 401, "Unauthorized.")),
    ("PAYMENT_REQUIRED", (402, 402, "Payment Required.")),
    ("FORBIDDEN", (403, 403, "Forbidden.")),
    ("API_ENDPOINT_NOT_FOUND", (404, 404, "Invalid endpoint of API.")),
    ("API_ENDPOIND_NOT_FOUND", (404, 404, "Invalid endpoint of API.")),
    ("INTERNAL_SERVER_ERROR", (500, 500, "Internal Server Error")),
])
def test_known_string_codes(parser, error, expected):
    envelope = parser.classify(error, ErrorMeta())
    assert (envelope.code, envelope.http_code, envelope.message) == expected


def test_coded_error_classifies_like_its_string(parser):
    envelope = parser.classify(CodedError("FORBIDDEN"), ErrorMeta())
    assert (envelope.code, envelope.http_code, envelope.message) == (
        403, 403, "Forbidden.",
    )


@pytest.mark.parametrize("error", [
    "SOMETHING_ELSE",
    "",
    RuntimeError("db down"),
    ActionError(ErrorOptions(http_code=422, message="Invalid")),
    None,
    {"code": 401},
])
def test_everything_else_is_internal_error(parser, error):
    envelope = parser.classify(error, ErrorMeta())
    assert (envelope.code, envelope.http_code, envelope.message) == (
        500, 500, "Internal Server Error",
    )


def test_validation_error_is_400_with_errors(parser):
    problems = [{"field": "email", "message": "required", "type": "missing"}]
    envelope = parser.classify(ParamsValidationError(problems), ErrorMeta())
    assert envelope.code == 4000
    assert envelope.http_code == 400
    assert envelope.message == "Invalid parameters."
    assert envelope.errors == problems


def test_render_omits_none_and_hides_details(parser):
    envelope = parser.classify("UNAUTHORIZED", ErrorMeta())
    assert parser.render(envelope) == {
        "error": {"code": 401, "message": "Unauthorized."},
    }


def test_logs_through_context_logger(parser, caplog):
    context = SimpleNamespace(logger=logging.getLogger("restbind.ctx"), trace_id="t-1")
    with caplog.at_level(logging.ERROR, logger="restbind.ctx"):
        parser.classify(RuntimeError("boom"), ErrorMeta(context=context))
    record = next(r for r in caplog.records if r.name == "restbind.ctx.http")
    assert "boom" in record.getMessage()
    assert record.exc_info is not None
    assert record.trace_id == "t-1"


def test_does_not_log_non_string_non_exception(parser, caplog):
    with caplog.at_level(logging.ERROR):
        parser.classify({"weird": True}, ErrorMeta())
    assert not [r for r in caplog.records if r.name.endswith(".http")]
