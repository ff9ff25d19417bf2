import logging
from datetime import UTC, datetime, timedelta

import httpx
from jose import JWTError, jwt

from telecare.core.config import settings
from telecare.core.errors import SessionClosedError

logger = logging.getLogger(__name__)


def token_subject(token: str) -> str:
    """The token's `sub` claim, or the token itself when it has none."""
    try:
        sub = jwt.get_unverified_claims(token).get("sub")
    except JWTError:
        sub = None
    return str(sub) if sub else token


def token_expires_at(token: str) -> datetime | None:
    """Expiry from the token's unverified `exp` claim, if it has one."""
    try:
        exp = jwt.get_unverified_claims(token).get("exp")
    except JWTError:
        return None
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(int(exp), tz=UTC)
    except (TypeError, ValueError, OverflowError):
        return None


def _auth_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }


class ApiSession:
    """Authenticated connection to the appointment backend.

    Constructed on login with the identity provider's bearer token and closed
    on logout. Holds the only HTTP client used for backend calls.
    """

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ValueError("token is required")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.request_timeout_seconds,
            headers=_auth_headers(token),
            transport=transport,
        )
        self._closed = False

    async def __aenter__(self) -> "ApiSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def client(self) -> httpx.AsyncClient:
        if self._closed:
            raise SessionClosedError()
        return self._client

    @property
    def token(self) -> str:
        return self._token

    def replace_token(self, token: str) -> None:
        """Swap in a refreshed bearer token for subsequent requests."""
        if self._closed:
            raise SessionClosedError()
        if not token:
            raise ValueError("token is required")
        self._token = token
        self._client.headers["Authorization"] = f"Bearer {token}"
        logger.debug("Session token replaced")

    def adopt_if_newer(self, token: str) -> bool:
        """Replace the stored token only with one that expires later.

        Claims are read unverified, so an older or undated token never
        displaces the current one. The backend still verifies whatever is sent.
        """
        if token == self._token:
            return False
        new_expiry = token_expires_at(token)
        current = self.expires_at
        if new_expiry is None or (current is not None and new_expiry <= current):
            return False
        self.replace_token(token)
        return True

    @property
    def claims(self) -> dict:
        """Unverified claims; the backend verifies the signature."""
        try:
            return jwt.get_unverified_claims(self._token)
        except JWTError:
            return {}

    @property
    def expires_at(self) -> datetime | None:
        return token_expires_at(self._token)

    def needs_refresh(self, within: timedelta | None = None, now: datetime | None = None) -> bool:
        """True when the token expires inside the refresh window.

        Tokens whose expiry cannot be read are always due for refresh.
        """
        if within is None:
            within = timedelta(minutes=settings.token_refresh_window_minutes)
        expires_at = self.expires_at
        if expires_at is None:
            return True
        now = now or datetime.now(UTC)
        return expires_at - now <= within

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._client.aclose()
        logger.debug("API session closed")
