"""
Signed action tokens for email links (accept, decline, complete, ...).

Tokens are HS256 JWTs carrying ``{"id": ..., "action": ..., "exp": <epoch s>}``.
``TokenPayload.exp`` is exposed in epoch milliseconds.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Callable, Iterable, Optional, Union

import jwt
from django.utils import timezone

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'

ACTION_ACCEPT = 'accept'
ACTION_DECLINE = 'decline'
ACTION_PROPOSE = 'propose'
ACTION_ACCEPT_PROPOSED = 'accept-proposed'
ACTION_DECLINE_PROPOSED = 'decline-proposed'
ACTION_CANCEL = 'cancel'
ACTION_SUPPLIER_CANCEL = 'supplier-cancel'
ACTION_COMPLETE = 'complete'
ACTION_NO_EXPERIENCE = 'no-experience'
ACTION_CONFIRM_SESSION = 'confirm-session'


@dataclass(frozen=True)
class TokenPayload:
    id: str
    action: str
    exp: int

    @property
    def expires_at(self):
        return datetime.fromtimestamp(self.exp / 1000, tz=dt_timezone.utc)


class ActionTokenSigner:
    """Signs and verifies time-limited, action-scoped link tokens."""

    def __init__(self, secret: str, clock: Callable = timezone.now):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._clock = clock

    def _leeway(self) -> float:
        # jwt.decode checks exp against the wall clock; shift it onto this signer's clock
        return time.time() - self._clock().timestamp()

    def sign(self, payload: Union[TokenPayload, dict]) -> str:
        if isinstance(payload, TokenPayload):
            payload = {'id': payload.id, 'action': payload.action, 'exp': payload.exp}
        claims = {
            'id': str(payload['id']),
            'action': payload['action'],
            'exp': int(payload['exp']) // 1000,
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def issue(self, object_id, action: str, ttl: timedelta) -> str:
        exp = int((self._clock() + ttl).timestamp() * 1000)
        return self.sign({'id': str(object_id), 'action': action, 'exp': exp})

    def verify(self, token: str) -> Optional[TokenPayload]:
        """Return the payload of a valid, unexpired token, or None."""
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                leeway=self._leeway(),
                options={'require': ['exp', 'id', 'action']},
            )
        except jwt.ExpiredSignatureError:
            logger.info("🔑 [TOKEN] Expired link token")
            return None
        except jwt.InvalidSignatureError:
            logger.warning("🔑 [TOKEN] Signature mismatch")
            return None
        except jwt.InvalidTokenError:
            return None

        return TokenPayload(id=str(claims['id']), action=str(claims['action']), exp=int(claims['exp']) * 1000)

    def verify_for(self, token: str, object_id, actions: Iterable[str]) -> Optional[TokenPayload]:
        """Verify and also require the token to target ``object_id`` with one of ``actions``."""
        payload = self.verify(token)
        if payload is None:
            return None
        if payload.id != str(object_id) or payload.action not in set(actions):
            logger.warning(
                f"🔑 [TOKEN] Token for {payload.action}/{payload.id} used on {object_id}"
            )
            return None
        return payload
