"""In-memory credential state shared by every request of a client."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mask(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class TokenState:
    """Immutable snapshot of the token fields that change together."""

    access_token: str
    refresh_token: str
    expires_at: datetime
    refresh_token_expires_at: Optional[datetime] = None


@dataclass
class Credentials:
    client_id: str
    client_secret: str
    _state: TokenState = field(repr=False)

    @classmethod
    def create(
        cls,
        *,
        client_id: str,
        client_secret: str,
        access_token: str = "",
        refresh_token: str = "",
        expires_at: Optional[datetime] = None,
        refresh_token_expires_at: Optional[datetime] = None,
    ) -> "Credentials":
        # Unknown expiry is treated as already expired.
        state = TokenState(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=_parse_datetime(expires_at) or datetime.min.replace(tzinfo=timezone.utc),
            refresh_token_expires_at=_parse_datetime(refresh_token_expires_at),
        )
        return cls(client_id=client_id, client_secret=client_secret, _state=state)

    @property
    def access_token(self) -> str:
        return self._state.access_token

    @property
    def refresh_token(self) -> str:
        return self._state.refresh_token

    @property
    def expires_at(self) -> datetime:
        return self._state.expires_at

    @property
    def refresh_token_expires_at(self) -> Optional[datetime]:
        return self._state.refresh_token_expires_at

    def snapshot(self) -> TokenState:
        return self._state

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self._state.expires_at < (now or utcnow())

    def apply_token(
        self,
        *,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
        refresh_token_expires_at: Optional[datetime] = None,
    ) -> None:
        """Swap in a new token set in a single assignment."""

        current = self._state
        self._state = replace(
            current,
            access_token=access_token,
            expires_at=expires_at,
            refresh_token=refresh_token or current.refresh_token,
            refresh_token_expires_at=refresh_token_expires_at or current.refresh_token_expires_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        state = self._state
        return {
            "access_token": state.access_token,
            "refresh_token": state.refresh_token,
            "expires_at": state.expires_at.isoformat(),
            "refresh_token_expires_at": (
                state.refresh_token_expires_at.isoformat()
                if state.refresh_token_expires_at
                else None
            ),
        }

    @classmethod
    def from_dict(cls, client_id: str, client_secret: str, data: Dict[str, Any]) -> "Credentials":
        return cls.create(
            client_id=client_id,
            client_secret=client_secret,
            access_token=data.get("access_token") or "",
            refresh_token=data.get("refresh_token") or "",
            expires_at=data.get("expires_at"),
            refresh_token_expires_at=data.get("refresh_token_expires_at"),
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(client_id={self.client_id!r}, "
            f"access_token={_mask(self.access_token)!r}, "
            f"refresh_token={_mask(self.refresh_token)!r}, "
            f"expires_at={self.expires_at.isoformat()})"
        )
