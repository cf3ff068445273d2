"""Session identity and provider access.

``SessionIdentityProvider`` hands out an opaque identity for the session:
stable when a custom token is supplied, anonymous otherwise.
``ProviderAccessGate`` guards the lead views behind the shared provider key.
"""

import hashlib
import hmac
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from auracli.domain.models.common import UserId

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_KEY = "AURA-2026"


@dataclass(frozen=True)
class Identity:
    """Opaque session identity."""
    uid: UserId
    is_anonymous: bool = True


class SessionIdentityProvider:
    """Issues session identities."""

    def __init__(self):
        self._current: Optional[Identity] = None

    @property
    def current(self) -> Optional[Identity]:
        return self._current

    def sign_in(self, custom_token: Optional[str] = None) -> Identity:
        """Signs in with a custom token, or anonymously when none is given.

        The same token always maps to the same uid; anonymous sign-ins get a
        fresh uid each time.
        """
        if custom_token:
            digest = hashlib.sha256(custom_token.encode("utf-8")).hexdigest()[:28]
            identity = Identity(uid=UserId(digest), is_anonymous=False)
            logger.info("Signed in with custom token.")
        else:
            identity = Identity(uid=UserId(uuid.uuid4().hex), is_anonymous=True)
            logger.info("Signed in anonymously.")
        self._current = identity
        return identity


class ProviderAccessGate:
    """Checks the provider access key (case-insensitive)."""

    def __init__(self, access_key: str = DEFAULT_PROVIDER_KEY):
        if not access_key or not access_key.strip():
            raise ValueError("Provider access key must not be empty")
        self._expected = access_key.strip().upper().encode("utf-8")

    def authenticate(self, candidate: Optional[str]) -> bool:
        if not candidate:
            return False
        granted = hmac.compare_digest(candidate.strip().upper().encode("utf-8"), self._expected)
        if not granted:
            logger.warning("Provider access denied.")
        return granted
