"""
GitHub App authentication.

Installation tokens are minted from a short-lived App JWT and cached per
installation until they are within a minute of expiry.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import httpx
import jwt

from sentinel.exceptions import SourceControlError
from sentinel.utils.clock import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

REFRESH_MARGIN = timedelta(seconds=60)


@dataclass
class CachedToken:
    token: str
    expires_at: datetime


def build_app_jwt(app_id: str, private_key: str, now: Optional[float] = None) -> str:
    """
    Sign a GitHub App JWT (RS256, valid for 9 minutes).

    Args:
        app_id: GitHub App id
        private_key: PEM private key; literal ``\\n`` sequences are expanded
        now: Unix time override, for tests
    """
    issued = int(now if now is not None else time.time())
    claims = {
        "iat": issued - 60,  # GitHub allows for clock drift
        "exp": issued + 9 * 60,
        "iss": app_id,
    }
    return jwt.encode(claims, private_key.replace("\\n", "\n"), algorithm="RS256")


class InstallationTokenCache:
    """
    Per-installation token cache.

    Args:
        fetch: Callable returning ``(token, expires_at)`` for an installation
        clock: Returns the current aware UTC datetime
    """

    def __init__(
        self,
        fetch: Callable[[int], tuple[str, datetime]],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._fetch = fetch
        self._clock = clock
        self._tokens: dict[int, CachedToken] = {}
        self._lock = threading.Lock()

    def get(self, installation_id: int) -> str:
        with self._lock:
            cached = self._tokens.get(installation_id)
            if cached and cached.expires_at > self._clock() + REFRESH_MARGIN:
                return cached.token

            token, expires_at = self._fetch(installation_id)
            self._tokens[installation_id] = CachedToken(token, expires_at)
            logger.debug(f"Generated installation token for {installation_id}")
            return token

    def invalidate(self, installation_id: int) -> None:
        with self._lock:
            self._tokens.pop(installation_id, None)


class AppTokenFetcher:
    """Exchanges an App JWT for an installation access token."""

    def __init__(self, app_id: str, private_key: str, http: httpx.Client):
        self.app_id = app_id
        self.private_key = private_key
        self.http = http

    def __call__(self, installation_id: int) -> tuple[str, datetime]:
        response = self.http.post(
            f"/app/installations/{installation_id}/access_tokens",
            headers={"Authorization": f"Bearer {build_app_jwt(self.app_id, self.private_key)}"},
        )
        if response.status_code >= 400:
            raise SourceControlError(
                f"Failed to create installation token for {installation_id}: "
                f"{response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        data = response.json()
        expires_at = parse_timestamp(data.get("expires_at")) or utcnow() + timedelta(
            minutes=55
        )
        return data["token"], expires_at
