from __future__ import annotations

import os

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from auth.flow import AuthFlow
from auth.google_oauth2 import GoogleOAuthClient
from auth.session_store import SessionStore
from authsession.constants import APP_VERSION, LOGGER
from authsession.env import (
    get_env_int,
    load_auth_config,
    load_env,
    setup_logging,
    validate_env,
)


async def home_route(request: Request) -> Response:
    del request
    return PlainTextResponse("Welcome. Sign in at /slogin, sign out at /slogout.")


async def health_route(request: Request) -> Response:
    del request
    return JSONResponse({"status": "ok", "version": APP_VERSION})


def build_profile_route(session_store: SessionStore):
    async def profile_route(request: Request) -> Response:
        session = session_store.load(request)
        return JSONResponse(
            {
                "id": session.id,
                "email": session.email,
                "fullname": session.fullname,
            }
        )

    return profile_route


def create_auth_flow() -> AuthFlow:
    config = load_auth_config()
    session_store = SessionStore(
        config.cookie_secret,
        cookie_name=config.cookie_name,
        cookie_secure=config.cookie_secure,
    )
    return AuthFlow(
        config=config,
        session_store=session_store,
        provider=GoogleOAuthClient(config),
    )


def create_app(flow: AuthFlow | None = None) -> Starlette:
    if flow is None:
        load_env()
        setup_logging()
        validate_env()
        flow = create_auth_flow()
        LOGGER.info("Login callback registered at %s", flow.config.redirect_url)

    routes = [
        Route("/", home_route, methods=["GET"]),
        Route("/health", health_route, methods=["GET"]),
        Route(
            "/profile",
            flow.protect(build_profile_route(flow.session_store)),
            methods=["GET"],
        ),
        *flow.routes(),
    ]
    return Starlette(routes=routes)


def main() -> None:
    load_env()
    host = os.getenv("AUTH_LISTEN_HOST", "127.0.0.1")
    port = get_env_int("AUTH_PORT", 8080)
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
