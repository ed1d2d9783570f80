from __future__ import annotations


class AuthError(RuntimeError):
    """Base class for failures inside the login flow.

    All of these are request-scoped: the flow logs them and sends the user
    agent back to the landing page.
    """


class EntropySourceError(AuthError):
    def __init__(self, message: str = "Random source could not supply a state token.") -> None:
        super().__init__(message)


class InvalidStateError(AuthError):
    def __init__(self, message: str = "Invalid oauth state.") -> None:
        super().__init__(message)


class ExchangeError(AuthError):
    pass


class FetchError(AuthError):
    pass


class SessionDecodeError(AuthError):
    pass


class SessionSaveError(AuthError):
    pass
