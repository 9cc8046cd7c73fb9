"""
Shopify query-string HMAC signing and verification.

The signed message is every query parameter except `hmac` and `signature`,
sorted by key and joined as a URL-encoded query string. The digest is
HMAC-SHA256 with the app secret, hex encoded.
"""

import hashlib
import hmac
import time
from urllib.parse import quote, urlencode

EXCLUDED_PARAMS = {"hmac", "signature"}

# Characters left unescaped by Node's querystring.escape, beyond quote()'s defaults.
_QUERYSTRING_SAFE = "!*'()"


def signing_message(params: dict) -> str:
    """Canonical message for a set of query parameters."""
    items = sorted(
        (key, "" if value is None else str(value))
        for key, value in params.items()
        if key not in EXCLUDED_PARAMS
    )
    return urlencode(items, safe=_QUERYSTRING_SAFE, quote_via=quote)


def sign_query(params: dict, secret: str) -> str:
    """Return the hex HMAC-SHA256 signature for params."""
    return hmac.new(
        secret.encode("utf-8"),
        signing_message(params).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def verify_query(
    params: dict, secret: str, max_age: int = 0, now: float | None = None
) -> bool:
    """Check the `hmac` parameter against the rest of params.

    With max_age > 0 the `timestamp` parameter must also be within max_age
    seconds of now.
    """
    provided = params.get("hmac")
    if not provided or not secret:
        return False

    if max_age > 0 and not _timestamp_is_fresh(params.get("timestamp"), max_age, now):
        return False

    expected = sign_query(params, secret)
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def _timestamp_is_fresh(timestamp, max_age: int, now: float | None) -> bool:
    try:
        issued_at = int(timestamp)
    except (TypeError, ValueError):
        return False
    current = time.time() if now is None else now
    return abs(current - issued_at) <= max_age
