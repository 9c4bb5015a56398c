"""Error Classifier safety net — verifies classifiers can never break a response.

Tests cover:
    - safe_classify degrades raising/ill-typed classifiers to the 500 envelope
    - Bare callables and envelope-shaped dicts (incl. camelCase httpCode) accepted
    - safe_render degrades a raising renderer
    - resolve_classifier picks the most specific configured classifier
    - Built-in dialects satisfy the ErrorClassifier protocol
"""

import pytest

from restbind.schemas.envelope import INTERNAL_SERVER_ERROR, ErrorEnvelope
from restbind.services.action_error_formatter import ActionErrorFormatter
from restbind.services.error_classifier import (
    ErrorClassifier, ErrorMeta, resolve_classifier, safe_classify, safe_render,
)
from restbind.services.errors_parser import ErrorsParser


class _Exploding:
    def classify(self, error, meta):
        raise RuntimeError("classifier bug")

    def render(self, envelope):
        raise RuntimeError("renderer bug")


def test_raising_classifier_degrades_to_internal_error():
    assert safe_classify(_Exploding(), "FORBIDDEN", ErrorMeta()) == INTERNAL_SERVER_ERROR


def test_ill_typed_result_degrades_to_internal_error():
    assert safe_classify(lambda err, meta: 42, "x", ErrorMeta()) == INTERNAL_SERVER_ERROR


def test_callable_classifier_returning_envelope():
    def teapot(error, meta):
        return ErrorEnvelope(code=418, http_code=418, message="I'm a teapot")

    assert safe_classify(teapot, "x", ErrorMeta()).http_code == 418


def test_callable_classifier_returning_camel_case_dict():
    def legacy(error, meta):
        return {"code": 409, "httpCode": 409, "message": "Conflict"}

    envelope = safe_classify(legacy, "x", ErrorMeta())
    assert (envelope.code, envelope.http_code, envelope.message) == (409, 409, "Conflict")


def test_raising_renderer_degrades_to_internal_body():
    assert safe_render(_Exploding(), INTERNAL_SERVER_ERROR) == {
        "error": {"code": 500, "message": "Internal Server Error"},
    }


def test_bare_callable_renders_short_shape():
    envelope = ErrorEnvelope(code=403, http_code=403, message="Forbidden.", hash="H")
    assert safe_render(lambda e, m: e, envelope) == {
        "error": {"code": 403, "message": "Forbidden."},
    }


def test_resolve_classifier_most_specific_wins():
    action_level, controller_level, default = ErrorsParser(), ErrorsParser(), ErrorsParser()
    assert resolve_classifier(action_level, controller_level, default) is action_level
    assert resolve_classifier(None, controller_level, default) is controller_level
    assert resolve_classifier(None, None, default) is default


def test_resolve_classifier_without_candidates_raises():
    with pytest.raises(LookupError):
        resolve_classifier(None, None)


def test_builtin_dialects_satisfy_classifier_protocol():
    assert isinstance(ErrorsParser(), ErrorClassifier)
    assert isinstance(ActionErrorFormatter(), ErrorClassifier)
    assert not isinstance(lambda err, meta: None, ErrorClassifier)
