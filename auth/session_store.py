from __future__ import annotations

import time

from itsdangerous import BadData, URLSafeSerializer
from starlette.requests import Request
from starlette.responses import Response

from auth.errors import SessionDecodeError, SessionSaveError
from auth.models import Session
from authsession.constants import LOGGER, SESSION_COOKIE_NAME, SESSION_SALT


class SessionStore:
    """Signed, client-side session container under one fixed cookie name.

    The cookie holds the whole ``Session`` record. Integrity comes from the
    itsdangerous signature; nothing in the cookie is secret.
    """

    def __init__(
        self,
        secret: str,
        *,
        cookie_name: str = SESSION_COOKIE_NAME,
        salt: str = SESSION_SALT,
        cookie_secure: bool = False,
    ) -> None:
        if not secret:
            raise RuntimeError("Session cookie secret must not be empty.")
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.serializer = URLSafeSerializer(secret_key=secret, salt=salt)

    def load(self, request: Request) -> Session:
        value = request.cookies.get(self.cookie_name)
        if not value:
            return Session()

        try:
            session = self.decode(value)
        except SessionDecodeError as error:
            LOGGER.warning("Ignoring session cookie on %s: %s", request.url.path, error)
            return Session()

        if session.is_expired():
            LOGGER.info("Session cookie expired at %s", session.expires_at)
            return Session()
        return session

    def decode(self, value: str) -> Session:
        try:
            payload = self.serializer.loads(value)
        except BadData as error:
            raise SessionDecodeError("Session cookie signature verification failed.") from error
        if not isinstance(payload, dict):
            raise SessionDecodeError("Session cookie payload must be an object.")
        return Session.from_payload(payload)

    def encode(self, session: Session) -> str:
        return self.serializer.dumps(session.to_payload())

    def set_expiry(self, session: Session, max_age: int) -> None:
        if max_age <= 0:
            raise ValueError("max_age must be positive.")
        session.max_age = max_age
        session.expires_at = time.time() + max_age

    def save(self, request: Request, response: Response, session: Session) -> None:
        max_age = None
        if session.expires_at is not None:
            max_age = max(0, int(session.expires_at - time.time()))

        try:
            value = self.encode(session)
            response.set_cookie(
                key=self.cookie_name,
                value=value,
                max_age=max_age,
                path="/",
                secure=self.cookie_secure or request.url.scheme == "https",
                httponly=True,
                samesite="lax",
            )
        except (TypeError, ValueError) as error:
            raise SessionSaveError(f"Failed to save session cookie: {error}") from error
