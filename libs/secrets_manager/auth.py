"""IAM bearer token authentication for IBM Cloud APIs."""
from __future__ import annotations

import time
from typing import Callable, Generator

import httpx

IAM_URL = "https://iam.cloud.ibm.com"
IAM_TEST_URL = "https://iam.test.cloud.ibm.com"
TOKEN_PATH = "/identity/token"
APIKEY_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
API_KEY_NOT_FOUND = "Provided API key could not be found"

# Tokens are renewed this many seconds before they expire.
REFRESH_MARGIN_SECONDS = 60


class IamTokenError(RuntimeError):
    """Raised when IAM refuses to exchange an API key for a bearer token."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def transient(self) -> bool:
        """True when the token endpoint was unreachable or asked to back off."""

        return self.status_code is None or self.status_code >= httpx.codes.TOO_MANY_REQUESTS

    @property
    def api_key_not_found(self) -> bool:
        return API_KEY_NOT_FOUND in str(self)


def iam_url_for(instance_url: str) -> str:
    """Return the IAM endpoint matching the environment of ``instance_url``."""

    if "secrets-manager.test.appdomain.cloud" in instance_url:
        return IAM_TEST_URL
    return IAM_URL


class IamTokenAuth(httpx.Auth):
    """Exchange an API key for an IAM access token and attach it to requests."""

    requires_response_body = True

    def __init__(
        self,
        api_key: str,
        *,
        iam_url: str = IAM_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api_key = api_key
        self._token_url = iam_url.rstrip("/") + TOKEN_PATH
        self._clock = clock
        self._access_token: str | None = None
        self._expires_at = 0.0

    def _token_expired(self) -> bool:
        return self._access_token is None or self._clock() >= self._expires_at - REFRESH_MARGIN_SECONDS

    def _build_token_request(self) -> httpx.Request:
        return httpx.Request(
            "POST",
            self._token_url,
            data={"grant_type": APIKEY_GRANT_TYPE, "apikey": self._api_key},
            headers={"Accept": "application/json"},
        )

    def _update_token(self, response: httpx.Response) -> None:
        if response.status_code != httpx.codes.OK:
            try:
                message = response.json().get("errorMessage") or response.text
            except (ValueError, AttributeError):
                message = response.text
            raise IamTokenError(
                f"cannot obtain IAM access token ({response.status_code}): {message}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
            self._access_token = str(data["access_token"])
            expires_in = float(data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise IamTokenError(
                f"cannot decode IAM token response: {exc}", status_code=response.status_code
            ) from exc
        self._expires_at = self._clock() + expires_in

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self._token_expired():
            token_response = yield self._build_token_request()
            self._update_token(token_response)
        request.headers["Authorization"] = f"Bearer {self._access_token}"
        yield request


__all__ = ["IamTokenAuth", "IamTokenError", "iam_url_for"]
