"""Two-legged access tokens for the model-hosting service, cached per scope set."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable

import requests
from pydantic import BaseModel

from bimqa.config import DEFAULT_TOKEN_TTL_S, TOKEN_SAFETY_MARGIN_S
from bimqa.errors import ConfigurationError, InferenceServiceError

logger = logging.getLogger(__name__)

APS_AUTH_URL = "https://developer.api.autodesk.com/authentication/v2/token"
DEFAULT_SCOPES = ("data:read", "viewables:read")


class CachedToken(BaseModel):
    access_token: str
    expires_at: float
    scope_key: str


# (scopes) -> (access_token, expires_in seconds)
TokenFetcher = Callable[[list[str]], tuple[str, float]]


def scope_key(scopes: Iterable[str]) -> str:
    """Order-independent key of a scope set."""
    return " ".join(sorted(scopes))


class TokenCache:
    """Holds the last issued token and reuses it while it stays valid.

    A token is reused only for the same scope set and only while more
    than *safety_margin* seconds of validity remain.

    Parameters
    ----------
    fetcher:
        Callable issuing a new token for a list of scopes; returns
        ``(access_token, expires_in)``.
    safety_margin:
        Seconds of remaining validity below which a token is refreshed.
    clock:
        Time source, replaceable in tests.
    """

    def __init__(
        self,
        fetcher: TokenFetcher,
        *,
        safety_margin: float = TOKEN_SAFETY_MARGIN_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetcher = fetcher
        self.safety_margin = safety_margin
        self._clock = clock
        self._token: CachedToken | None = None

    def get(self, scopes: Iterable[str] = DEFAULT_SCOPES) -> str:
        scopes = list(scopes)
        key = scope_key(scopes)
        now = self._clock()
        tok = self._token
        if tok is not None and tok.scope_key == key and tok.expires_at - now > self.safety_margin:
            return tok.access_token

        access_token, expires_in = self._fetcher(scopes)
        self._token = CachedToken(
            access_token=access_token,
            expires_at=now + float(expires_in or DEFAULT_TOKEN_TTL_S),
            scope_key=key,
        )
        logger.debug("Issued token for scopes %r (expires in %ss)", key, expires_in)
        return access_token

    def invalidate(self) -> None:
        self._token = None


def client_credentials_fetcher(
    client_id: str | None,
    client_secret: str | None,
    *,
    auth_url: str = APS_AUTH_URL,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> TokenFetcher:
    """Build a :data:`TokenFetcher` for the client-credentials grant.

    Raises :class:`ConfigurationError` immediately when either
    credential is missing.
    """
    missing = [
        name for name, value in (("APS_CLIENT_ID", client_id), ("APS_CLIENT_SECRET", client_secret))
        if not value
    ]
    if missing:
        raise ConfigurationError(f"Missing {', '.join(missing)}")
    http = session or requests.Session()

    def fetch(scopes: list[str]) -> tuple[str, float]:
        try:
            r = http.post(
                auth_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "scope": " ".join(scopes),
                },
                timeout=timeout,
            )
            r.raise_for_status()
            body = r.json()
        except (requests.RequestException, ValueError) as exc:
            raise InferenceServiceError(f"Token request failed: {exc}") from exc
        return body["access_token"], float(body.get("expires_in") or DEFAULT_TOKEN_TTL_S)

    return fetch
