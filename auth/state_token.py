from __future__ import annotations

import base64
import secrets
import threading
import time

from auth.errors import EntropySourceError
from auth.models import PendingState
from authsession.constants import (
    LOGGER,
    PENDING_STATE_MAX_ENTRIES,
    PENDING_STATE_TTL_SECONDS,
    STATE_TOKEN_BYTES,
)

MIN_STATE_TOKEN_BYTES = 16


def generate_state_token(size_bytes: int = STATE_TOKEN_BYTES) -> str:
    """Return ``size_bytes`` of CSPRNG output as unpadded URL-safe base64."""
    if size_bytes < MIN_STATE_TOKEN_BYTES:
        raise ValueError(f"State tokens need at least {MIN_STATE_TOKEN_BYTES} bytes of entropy.")
    try:
        raw = secrets.token_bytes(size_bytes)
    except (OSError, NotImplementedError) as error:
        raise EntropySourceError(f"Failed to create state token: {error}") from error
    if len(raw) != size_bytes:
        raise EntropySourceError("Random source returned a short read.")
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


class PendingStateStore:
    """In-flight state tokens keyed by their own value.

    Every login attempt gets its own entry, so concurrent logins from
    different user agents do not overwrite each other. An entry is removed
    the first time it is consumed and expires after ``ttl_seconds``. At most
    ``max_entries`` are held; issuing past that drops the oldest entry.
    """

    def __init__(
        self,
        ttl_seconds: int = PENDING_STATE_TTL_SECONDS,
        max_entries: int = PENDING_STATE_MAX_ENTRIES,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1.")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._pending: dict[str, PendingState] = {}
        self._lock = threading.Lock()

    def issue(self, value: str) -> PendingState:
        pending = PendingState(value=value, created_at=time.time())
        with self._lock:
            self._cleanup()
            # Re-issuing moves the entry to the back so insertion order stays age order.
            self._pending.pop(value, None)
            while len(self._pending) >= self.max_entries:
                oldest = next(iter(self._pending))
                del self._pending[oldest]
                LOGGER.warning("Pending state store full; dropped the oldest login attempt.")
            self._pending[value] = pending
        return pending

    def consume(self, value: str) -> PendingState | None:
        with self._lock:
            self._cleanup()
            pending = self._pending.pop(value, None)
        if pending is None:
            return None
        if time.time() - pending.created_at > self.ttl_seconds:
            return None
        return pending

    def __contains__(self, value: object) -> bool:
        with self._lock:
            return value in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def _cleanup(self) -> None:
        cutoff = time.time() - self.ttl_seconds
        # Entries are in issue order, so stop at the first one still alive.
        while self._pending:
            oldest = next(iter(self._pending))
            if self._pending[oldest].created_at >= cutoff:
                break
            del self._pending[oldest]
