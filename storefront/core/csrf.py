"""
CSRF protection for state-changing routes.

Synchronizer-token pattern: each session holds one random token, handed out
by GET /api/auth/csrf-token. State-changing requests must echo it in the
X-CSRF-Token header. Any missing piece or mismatch fails closed.
"""

import hmac
import logging
import secrets

from storefront.core.sessions import ServerSession

logger = logging.getLogger(__name__)

CSRF_SESSION_KEY = "csrf_token"


def ensure_session_token(session: ServerSession) -> str:
    """
    Return the session's CSRF token, creating it on first use.

    Idempotent: repeated calls return the same token for the session.
    """
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_hex(32)
        session[CSRF_SESSION_KEY] = token
    return token


def verify(session: ServerSession, presented: str | None) -> bool:
    """
    Check a presented token against the session token.

    Returns False when the session has no token, nothing was presented,
    or the values differ. Comparison is constant-time.
    """
    expected = session.get(CSRF_SESSION_KEY)
    if not expected or not presented:
        return False
    return hmac.compare_digest(expected.encode(), presented.encode())
