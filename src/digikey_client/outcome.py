"""Result values returned by the request executor."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import ApiClientError


@dataclass(frozen=True)
class Success:
    body: str
    rate_limit_remaining: Optional[int] = None

    def json(self) -> Any:
        if not self.body:
            return None
        return json.loads(self.body)


@dataclass(frozen=True)
class Failure:
    error: ApiClientError

    @property
    def kind(self) -> str:
        return self.error.kind

    @property
    def http_status(self) -> Optional[int]:
        return self.error.http_status

    @property
    def message(self) -> str:
        return self.error.message

    def raise_error(self) -> None:
        raise self.error


ApiOutcome = Union[Success, Failure]


def unwrap(outcome: ApiOutcome) -> str:
    """Return the body of a successful outcome or raise the failure's error."""

    if isinstance(outcome, Failure):
        outcome.raise_error()
    return outcome.body
