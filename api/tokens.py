"""Signed round tokens handed to clients in place of raw round ids."""

from functools import lru_cache

from itsdangerous import BadData, URLSafeTimedSerializer

from config import config

TOKEN_SALT = "fairjack.round"


@lru_cache(maxsize=8)
def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def issue_round_token(round_id: str, secret_key: str | None = None) -> str:
    """Sign a round id for the client."""
    return _serializer(secret_key or config.security.secret_key).dumps({"round": round_id})


def extract_round_id(
    token: str,
    max_age: int | None = None,
    secret_key: str | None = None,
) -> str | None:
    """
    Recover the round id from a client token.

    Args:
        token: Value of the X-Round-Token header
        max_age: Oldest accepted token in seconds; round_ttl when omitted
        secret_key: Signing key; the configured one when omitted

    Returns:
        The round id, or None for a forged, malformed or expired token
    """
    serializer = _serializer(secret_key or config.security.secret_key)
    try:
        payload = serializer.loads(
            token, max_age=config.round_ttl if max_age is None else max_age
        )
    except BadData:
        return None
    if not isinstance(payload, dict):
        return None
    round_id = payload.get("round")
    return round_id if isinstance(round_id, str) else None
