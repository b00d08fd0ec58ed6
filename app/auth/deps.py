## Current user dependency (bearer token)
import uuid

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.deps import get_db
from app.db import queries
from app.auth.sessions import bearer_token, hash_token


class NotAuthenticated(Exception):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


def get_current_user_id(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> uuid.UUID:
    raw = bearer_token(authorization)
    if not raw:
        raise NotAuthenticated("Authorization header missing")

    user_id = queries.user_id_for_token(db, hash_token(raw))
    if not user_id:
        raise NotAuthenticated("Invalid user token")
    return user_id
