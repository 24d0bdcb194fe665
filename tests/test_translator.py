from conftest import make_response
from digikey_client.errors import ApiError
from digikey_client.outcome import Failure, Success
from digikey_client.translator import rate_limit_remaining, translate


def test_success_with_rate_limit_header():
    outcome = translate(make_response(200, '{"Products": []}', {"X-RateLimit-Remaining": "41"}))

    assert outcome == Success(body='{"Products": []}', rate_limit_remaining=41)
    assert outcome.json() == {"Products": []}


def test_success_without_header_or_body():
    outcome = translate(make_response(204, b""))

    assert outcome == Success(body="", rate_limit_remaining=None)
    assert outcome.json() is None


def test_non_numeric_rate_limit_is_ignored():
    assert rate_limit_remaining(make_response(200, "{}", {"X-RateLimit-Remaining": "n/a"})) is None


def test_failure_keeps_status_body_and_reason():
    outcome = translate(make_response(500, "boom", reason="Internal Server Error"))

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, ApiError)
    assert outcome.error.status_code == 500
    assert outcome.error.body == "boom"
    assert outcome.error.reason == "Internal Server Error"
    assert "boom" in outcome.message
    assert "Internal Server Error" in outcome.message
