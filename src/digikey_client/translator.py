"""Turns a completed HTTP exchange into an ApiOutcome."""

from __future__ import annotations

from typing import Optional

import requests

from .errors import ApiError
from .outcome import ApiOutcome, Failure, Success

RATE_LIMIT_HEADER = "X-RateLimit-Remaining"


def rate_limit_remaining(response: requests.Response) -> Optional[int]:
    value = response.headers.get(RATE_LIMIT_HEADER)
    if value is None:
        return None
    try:
        return int(str(value).split(",")[0].strip())
    except ValueError:
        return None


def translate(response: requests.Response) -> ApiOutcome:
    if 200 <= response.status_code < 300:
        body = response.text if response.content else ""
        return Success(body=body, rate_limit_remaining=rate_limit_remaining(response))
    return Failure(ApiError(response.status_code, response.text, response.reason or ""))
