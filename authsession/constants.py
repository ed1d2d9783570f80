from __future__ import annotations

import logging

LOGGER = logging.getLogger("authsession")
APP_VERSION = "0.1.0"

SESSION_COOKIE_NAME = "authsession"
SESSION_SALT = "authsession-cookie-v1"
SESSION_MAX_AGE_SECONDS = 60 * 60 * 8

STATE_TOKEN_BYTES = 16
PENDING_STATE_TTL_SECONDS = 600
PENDING_STATE_MAX_ENTRIES = 10_000
PROVIDER_TIMEOUT_SECONDS = 10.0

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)
