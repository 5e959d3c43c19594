from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import unquote_to_bytes

from pydantic import BaseModel, ConfigDict

# •	code: str | None   (single-use authorization code from the provider)
# •	state: str | None  (opaque user id, set by the app when it started the flow)
# •	error: str | None  (provider declined or failed the flow)
# •	invalid: names of the fields above whose bytes were not valid UTF-8

_FIELDS = ("code", "state", "error")


@dataclass(frozen=True, slots=True)
class CallbackRequest:
    code: str | None
    state: str | None
    error: str | None
    invalid: frozenset[str] = field(default=frozenset())

    @staticmethod
    def from_query(
        *, code: str | None, state: str | None, error: str | None
    ) -> CallbackRequest:
        # Empty query values (?code=) count as absent, same as missing keys.
        return CallbackRequest(code=code or None, state=state, error=error or None)

    @staticmethod
    def from_raw_query(raw: bytes) -> CallbackRequest:
        """Parse code, state and error from the undecoded query string.

        Values are percent-decoded to bytes and then decoded as strict UTF-8,
        so `state` reaches storage exactly as the provider sent it.  A value
        that is not valid UTF-8 is kept in its replacement-decoded form and
        its name is added to ``invalid``.  Repeated keys: the last one wins.
        """
        values: dict[str, str] = {}
        invalid: set[str] = set()
        for pair in raw.split(b"&"):
            if not pair:
                continue
            raw_name, _, raw_value = pair.partition(b"=")
            name = unquote_to_bytes(raw_name.replace(b"+", b" ")).decode(
                "utf-8", "replace"
            )
            if name not in _FIELDS:
                continue
            value_bytes = unquote_to_bytes(raw_value.replace(b"+", b" "))
            try:
                values[name] = value_bytes.decode("utf-8")
                invalid.discard(name)
            except UnicodeDecodeError:
                values[name] = value_bytes.decode("utf-8", "replace")
                invalid.add(name)

        request = CallbackRequest.from_query(
            code=values.get("code"),
            state=values.get("state"),
            error=values.get("error"),
        )
        return replace(request, invalid=frozenset(invalid))


class CallbackReason(str, Enum):
    MISSING_CODE = "missing_code"
    INVALID_PARAMETER = "invalid_parameter"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    STORAGE_FAILED = "storage_failed"
    EXCEPTION = "exception"


@dataclass(frozen=True, slots=True)
class CallbackResult:
    """Where to send the browser, plus the outcome label for logs and metrics."""

    redirect_url: str
    outcome: str

    @property
    def ok(self) -> bool:
        return self.outcome == "ok"


class TokenSet(BaseModel):
    """Token response from the provider's token endpoint.

    Only ``access_token`` is required.  Fields the provider leaves out stay
    None and are dropped from the storage payload.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None
    token_type: str | None = None

    def storage_payload(self, user_id: str | None) -> dict[str, object]:
        payload: dict[str, object] = {"userId": user_id}
        payload.update(self.model_dump(exclude_none=True))
        return payload
