"""
auth/tokens.py -- Reset tokens, session cookie signing, and the UTC clock.

Security design decisions:
  Reset tokens: secrets.token_hex(20) gives 160 bits from the OS CSPRNG,
       hex-encoded so the token drops into a URL path unescaped. The token is
       opaque -- it encodes nothing and is only ever compared in the store.
       Expiry is absolute (issue time + TTL), stored next to the token.

  Session cookie: python-jose with HS256. The cookie carries only the opaque
       session id ("sid") and an expiry. The signature stops clients forging
       session ids; the server-side session row is what makes the session live,
       so logout works even while the cookie is still validly signed.
       Decoding returns None on any failure -- the caller treats that as
       anonymous.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup (see core/config.py).

Layer rule: no imports from api/, board/, or notify/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import ResetToken
from core.config import get_settings

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

RESET_TOKEN_BYTES = 20


def utcnow() -> datetime:
    """Timezone-aware current UTC time. Default clock for the auth services."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Password-reset tokens
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Issues opaque, single-purpose password-reset tokens.

    clock is injectable so tests can pin issue time and check the expiry
    arithmetic exactly.
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], datetime] = utcnow) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue(self) -> ResetToken:
        return ResetToken(
            token=secrets.token_hex(RESET_TOKEN_BYTES),
            expires_at=self._clock() + self.ttl,
        )


# ---------------------------------------------------------------------------
# Session cookie encode / decode
# ---------------------------------------------------------------------------


def encode_session_cookie(session_id: str, expires_at: datetime) -> str:
    """Sign a session id into a compact JWT for the session cookie."""
    payload = {"sid": session_id, "exp": expires_at}
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_session_cookie(token: str) -> str | None:
    """Return the session id from a signed cookie value, or None on any failure."""
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    if not isinstance(sid, str) or not sid:
        return None
    return sid


def set_session_cookie(response, token: str, max_age: int = 0) -> None:
    """Write the signed session cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the session row's TTL so both expire together.
    """
    duration = max_age if max_age > 0 else _settings.session_expire_seconds
    response.set_cookie(
        _settings.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_session_cookie(response) -> None:
    response.delete_cookie(_settings.session_cookie_name)
