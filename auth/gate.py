from __future__ import annotations

import functools
import inspect

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from auth.session_store import SessionStore
from authsession.constants import LOGGER


class AuthorizationGate:
    def __init__(self, session_store: SessionStore) -> None:
        self.session_store = session_store

    def is_authenticated(self, request: Request) -> bool:
        return self.session_store.load(request).authenticated is True

    def protect(self, endpoint):
        """Wrap a Starlette endpoint so it only runs for authenticated sessions.

        Rejected requests get a bare 403 and the endpoint is never called.
        Sync endpoints run in Starlette's threadpool.
        """

        @functools.wraps(endpoint)
        async def protected(request: Request) -> Response:
            session = self.session_store.load(request)
            if session.authenticated is not True:
                return PlainTextResponse("Forbidden", status_code=403)

            LOGGER.info("Authenticated user accessing %s: %s", request.url.path, session.email)

            if inspect.iscoroutinefunction(endpoint):
                return await endpoint(request)
            return await run_in_threadpool(endpoint, request)

        return protected
