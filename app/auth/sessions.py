## Session token utilities

import hashlib

BEARER_PREFIX = "bearer "


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    if authorization.lower().startswith(BEARER_PREFIX):
        authorization = authorization[len(BEARER_PREFIX):]
    return authorization.strip() or None
