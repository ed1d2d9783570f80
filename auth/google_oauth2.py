from __future__ import annotations

import hmac
import time
from dataclasses import dataclass

import httpx

from auth.errors import ExchangeError, FetchError, InvalidStateError
from auth.models import AuthConfig, UserProfile
from auth.urls import append_query_params
from authsession.constants import LOGGER

# Tokens count as expired this many seconds before their real expiry.
EXPIRY_DELTA_SECONDS = 10


@dataclass
class TokenCredential:
    access_token: str
    token_type: str
    expires_in: int | None
    expires_at: float | None
    scope: str = ""
    refresh_token: str | None = None
    id_token: str | None = None

    def is_expired(self, *, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return self.expires_at - EXPIRY_DELTA_SECONDS <= current

    @classmethod
    def from_payload(cls, payload: dict) -> "TokenCredential":
        access_token = payload.get("access_token")
        token_type = payload.get("token_type", "Bearer")
        expires_in = payload.get("expires_in")
        scope = payload.get("scope", "")

        if not isinstance(access_token, str) or not access_token:
            raise ValueError("Token response missing access_token.")
        if not isinstance(token_type, str) or not token_type:
            raise ValueError("Token response token_type must be a string.")
        if expires_in is not None and (not isinstance(expires_in, int) or isinstance(expires_in, bool)):
            raise ValueError("Token response expires_in must be an integer.")
        if not isinstance(scope, str):
            raise ValueError("Token response scope must be a string.")

        refresh_token = payload.get("refresh_token")
        id_token = payload.get("id_token")
        return cls(
            access_token=access_token,
            token_type=token_type,
            expires_in=expires_in,
            expires_at=None if expires_in is None else time.time() + expires_in,
            scope=scope,
            refresh_token=refresh_token if isinstance(refresh_token, str) else None,
            id_token=id_token if isinstance(id_token, str) else None,
        )


def build_authorization_url(config: AuthConfig, state: str) -> str:
    return append_query_params(
        config.endpoints.authorize_url,
        {
            "access_type": "online",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_url,
            "response_type": "code",
            "scope": " ".join(config.scopes),
            "state": state,
        },
    )


def token_is_valid(credential: TokenCredential | None) -> bool:
    if credential is None or not credential.access_token:
        return False
    return not credential.is_expired()


async def _log_request(request: httpx.Request) -> None:
    LOGGER.info("Provider request %s %s", request.method, request.url)


async def _log_response(response: httpx.Response) -> None:
    LOGGER.info(
        "Provider response %s %s -> %s",
        response.request.method,
        response.request.url,
        response.status_code,
    )


class GoogleOAuthClient:
    """Authorization-code exchange and profile lookup against Google.

    A shared ``httpx.AsyncClient`` may be injected; otherwise every call opens
    and closes its own client with the configured timeout.
    """

    def __init__(self, config: AuthConfig, *, http_client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._http_client = http_client

    def authorization_url(self, state: str) -> str:
        return build_authorization_url(self.config, state)

    def token_is_valid(self, credential: TokenCredential | None) -> bool:
        return token_is_valid(credential)

    async def exchange_code(self, code: str) -> TokenCredential:
        payload = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_url,
        }
        own_client = self._http_client is None
        http_client = self._http_client or self._new_client()

        try:
            response = await http_client.post(
                self.config.endpoints.token_url,
                data=payload,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as error:
            raise ExchangeError(
                f"Token request failed with status {error.response.status_code}: {error.response.text}"
            ) from error
        except httpx.TimeoutException as error:
            raise ExchangeError("Token request timed out.") from error
        except httpx.HTTPError as error:
            raise ExchangeError(f"Token request failed: {error}") from error
        except ValueError as error:
            raise ExchangeError("Token response is not valid JSON.") from error
        finally:
            if own_client:
                await http_client.aclose()

        if not isinstance(body, dict):
            raise ExchangeError("Token response must be a JSON object.")
        try:
            return TokenCredential.from_payload(body)
        except ValueError as error:
            raise ExchangeError(str(error)) from error

    async def fetch_profile(
        self,
        credential: TokenCredential,
        *,
        state: str,
        expected_state: str,
    ) -> UserProfile:
        """Fetch the signed-in user. ``expected_state`` is the server-held token;
        a mismatch raises ``InvalidStateError`` before any request is sent, so
        callers that skip ``PendingStateStore.consume`` are still covered.
        """
        if not state or not hmac.compare_digest(state.encode(), expected_state.encode()):
            raise InvalidStateError()

        own_client = self._http_client is None
        http_client = self._http_client or self._new_client()

        try:
            response = await http_client.get(
                self.config.endpoints.userinfo_url,
                headers={"Authorization": f"Bearer {credential.access_token}"},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as error:
            raise FetchError(
                f"Profile request failed with status {error.response.status_code}"
            ) from error
        except httpx.TimeoutException as error:
            raise FetchError("Profile request timed out.") from error
        except httpx.HTTPError as error:
            raise FetchError(f"Failed getting user info: {error}") from error
        except ValueError as error:
            raise FetchError("Profile response is not valid JSON.") from error
        finally:
            if own_client:
                await http_client.aclose()

        if not isinstance(body, dict):
            raise FetchError("Profile response must be a JSON object.")
        try:
            return UserProfile.from_payload(body)
        except ValueError as error:
            raise FetchError(str(error)) from error

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.config.provider_timeout_seconds,
            event_hooks={"request": [_log_request], "response": [_log_response]},
        )
