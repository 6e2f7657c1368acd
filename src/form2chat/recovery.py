"""Recovery snapshots — client-held copies of session state.

The session store may live on ephemeral storage, so every ASK/REVIEW
response carries a :class:`RecoverySnapshot` of what was just persisted.
A client that gets a "fresh" session back can send the snapshot with its
next request and the engine rebuilds the lost row from it.

Trust rules:
  - a snapshot only ever *reconstructs* a missing row, it never overrides
    an existing one (the engine enforces this)
  - when a secret is configured, snapshots must carry a valid HMAC-SHA256
    signature over their canonical JSON; anything else is ignored
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging

from form2chat.models.state import EngineState, RecoverySnapshot

logger = logging.getLogger(__name__)


def _canonical(field_cursor: int, state: EngineState) -> bytes:
    payload = {"field_cursor": field_cursor, "state": state.model_dump(mode="json")}
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode()


class RecoverySigner:
    """Signs outgoing snapshots and vets incoming ones.

    Args:
        secret: shared HMAC key; ``None`` disables signing and accepts
            unsigned snapshots (single-trust-domain deployments only)
    """

    def __init__(self, secret: str | None = None) -> None:
        self._key = secret.encode() if secret else None

    @property
    def enabled(self) -> bool:
        return self._key is not None

    def _digest(self, field_cursor: int, state: EngineState) -> str:
        return hmac.new(self._key, _canonical(field_cursor, state), hashlib.sha256).hexdigest()

    def sign(self, field_cursor: int, state: EngineState) -> RecoverySnapshot:
        """Build a snapshot of the given persisted values."""
        signature = self._digest(field_cursor, state) if self._key else None
        return RecoverySnapshot(field_cursor=field_cursor, state=state, signature=signature)

    def verify(self, snapshot: RecoverySnapshot | None) -> RecoverySnapshot | None:
        """Return ``snapshot`` if it may be trusted, else ``None``."""
        if snapshot is None:
            return None
        if self._key is None:
            return snapshot
        if not snapshot.signature:
            logger.warning("Ignoring unsigned recovery snapshot")
            return None
        expected = self._digest(snapshot.field_cursor, snapshot.state)
        # Constant-time comparison to prevent timing side-channels.
        if not hmac.compare_digest(snapshot.signature, expected):
            logger.warning("Ignoring recovery snapshot with a bad signature")
            return None
        return snapshot
