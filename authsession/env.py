from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from auth.models import AuthConfig
from auth.urls import build_redirect_url

from .constants import DEFAULT_SCOPES, LOGGER, PROVIDER_TIMEOUT_SECONDS

MIN_COOKIE_SECRET_LENGTH = 16

_HTTP_URL = TypeAdapter(AnyHttpUrl)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_scopes(raw: str | None) -> tuple[str, ...]:
    if raw is None or not raw.strip():
        return DEFAULT_SCOPES
    return tuple(scope for scope in raw.replace(",", " ").split() if scope)


def get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")
    if value <= 0:
        raise RuntimeError(f"{key} must be greater than zero.")
    return value


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    try:
        from dotenv import load_dotenv
    except ImportError:
        return
    load_dotenv(env_path, override=True)


def validate_env() -> None:
    required = (
        "AUTH_COOKIE_SECRET",
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
    )
    missing = [key for key in required if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    proto = os.getenv("AUTH_PROTO", "http").strip().lower()
    if proto not in {"http", "https"}:
        raise RuntimeError("AUTH_PROTO must be either http or https.")
    if proto == "http":
        LOGGER.warning("AUTH_PROTO is http; session cookies will not be marked Secure.")

    if len(os.getenv("AUTH_COOKIE_SECRET", "").strip()) < MIN_COOKIE_SECRET_LENGTH:
        raise RuntimeError(
            f"AUTH_COOKIE_SECRET must be at least {MIN_COOKIE_SECRET_LENGTH} characters long."
        )

    get_env_int("AUTH_PORT", 8080)
    _get_env_float("AUTH_PROVIDER_TIMEOUT", PROVIDER_TIMEOUT_SECONDS)


def load_auth_config() -> AuthConfig:
    proto = os.getenv("AUTH_PROTO", "http").strip().lower()
    host = os.getenv("AUTH_HOST", "localhost").strip()
    port = get_env_int("AUTH_PORT", 8080)

    redirect_url = build_redirect_url(proto, host, port)
    try:
        _HTTP_URL.validate_python(redirect_url)
    except ValidationError as error:
        raise RuntimeError(f"Callback URL {redirect_url!r} is not a valid HTTP URL.") from error

    return AuthConfig(
        client_id=os.getenv("GOOGLE_CLIENT_ID", "").strip(),
        client_secret=os.getenv("GOOGLE_CLIENT_SECRET", "").strip(),
        redirect_url=redirect_url,
        cookie_secret=os.getenv("AUTH_COOKIE_SECRET", "").strip(),
        cookie_secure=proto == "https",
        scopes=parse_scopes(os.getenv("AUTH_SCOPES")),
        provider_timeout_seconds=_get_env_float("AUTH_PROVIDER_TIMEOUT", PROVIDER_TIMEOUT_SECONDS),
    )


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("AUTH_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
