from __future__ import annotations

from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response
from starlette.routing import Route

from auth.errors import (
    EntropySourceError,
    ExchangeError,
    FetchError,
    InvalidStateError,
    SessionSaveError,
)
from auth.gate import AuthorizationGate
from auth.models import AuthConfig, PendingState
from auth.session_store import SessionStore
from auth.state_token import PendingStateStore, generate_state_token
from auth.urls import CALLBACK_PATH
from authsession.constants import LOGGER, STATE_TOKEN_BYTES

LOGIN_PATH = "/slogin"
LOGOUT_PATH = "/slogout"
HOME_PATH = "/"


class AuthFlow:
    """Login, callback and logout handlers for one identity provider.

    ``provider`` needs ``authorization_url``, ``exchange_code``,
    ``token_is_valid`` and ``fetch_profile`` (see ``GoogleOAuthClient``).
    """

    def __init__(
        self,
        *,
        config: AuthConfig,
        session_store: SessionStore,
        provider,
        pending_states: PendingStateStore | None = None,
        generate_token_fn=generate_state_token,
    ) -> None:
        self.config = config
        self.session_store = session_store
        self.provider = provider
        self.pending_states = (
            pending_states
            if pending_states is not None
            else PendingStateStore(
                config.pending_state_ttl_seconds,
                max_entries=config.pending_state_max_entries,
            )
        )
        self.gate = AuthorizationGate(session_store)
        self._generate_token_fn = generate_token_fn

    def routes(self) -> list[Route]:
        return [
            Route(LOGIN_PATH, self.login, methods=["GET"]),
            Route(LOGOUT_PATH, self.logout, methods=["GET"]),
            Route(CALLBACK_PATH, self.callback, methods=["GET", "POST"]),
        ]

    def protect(self, endpoint):
        return self.gate.protect(endpoint)

    # -- handlers --------------------------------------------------------------

    async def login(self, request: Request) -> Response:
        try:
            state = self._generate_token_fn(STATE_TOKEN_BYTES)
        except EntropySourceError as error:
            LOGGER.error("Login aborted on %s: %s", request.url.path, error)
            return self._redirect_home(request)

        self.pending_states.issue(state)
        return RedirectResponse(url=self.provider.authorization_url(state), status_code=307)

    async def logout(self, request: Request) -> Response:
        session = self.session_store.load(request)
        session.authenticated = False

        response = self._redirect_home(request)
        try:
            self.session_store.save(request, response, session)
        except SessionSaveError as error:
            LOGGER.error("Logout failed: %s", error)
            return self._save_failed()
        return response

    async def callback(self, request: Request) -> Response:
        params = await self._callback_params(request)

        if params.get("error"):
            LOGGER.warning("Provider returned an error on callback: %s", params["error"])
            return self._redirect_home(request)

        state = params.get("state", "")
        code = params.get("code", "")
        if not state or not code:
            LOGGER.warning("Rejected callback: missing state or code.")
            return self._redirect_home(request)

        try:
            pending = self._consume_state(state)
        except InvalidStateError as error:
            LOGGER.warning("Rejected callback: %s", error)
            return self._redirect_home(request)

        try:
            credential = await self.provider.exchange_code(code)
        except ExchangeError as error:
            LOGGER.error("Code exchange failed: %s", error)
            return self._redirect_home(request)

        if not self.provider.token_is_valid(credential):
            LOGGER.error("Token returned by provider is not valid.")
            return self._redirect_home(request)

        try:
            profile = await self.provider.fetch_profile(
                credential,
                state=state,
                expected_state=pending.value,
            )
        except (InvalidStateError, FetchError) as error:
            LOGGER.error("Fetching user info failed: %s", error)
            return self._redirect_home(request)

        session = self.session_store.load(request)
        session.authenticate(profile, state)
        self.session_store.set_expiry(session, self.config.session_max_age_seconds)

        response = self._redirect_home(request)
        try:
            self.session_store.save(request, response, session)
        except SessionSaveError as error:
            LOGGER.error("Session save after login failed: %s", error)
            return self._save_failed()

        LOGGER.info("Login completed for %s", profile.email)
        return response

    # -- helpers ---------------------------------------------------------------

    def _consume_state(self, state: str) -> PendingState:
        pending = self.pending_states.consume(state)
        if pending is None:
            raise InvalidStateError("Unknown or expired oauth state.")
        return pending

    async def _callback_params(self, request: Request) -> dict[str, str]:
        params = {key: value for key, value in request.query_params.items()}
        if request.method == "POST":
            form = await request.form()
            for key, value in form.multi_items():
                if isinstance(value, str):
                    params.setdefault(key, value)
        return params

    def _redirect_home(self, request: Request) -> Response:
        # A form-posted callback must not replay its POST against the home page.
        status_code = 303 if request.method == "POST" else 307
        return RedirectResponse(url=HOME_PATH, status_code=status_code)

    def _save_failed(self) -> Response:
        return PlainTextResponse("Session could not be saved.", status_code=500)
