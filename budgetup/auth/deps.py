import logging
import uuid

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from budgetup.auth.tokens import decode_access_token
from budgetup.db import get_db
from budgetup.errors import Unauthenticated
from budgetup.models.user import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user.

    Tokens are only issued after a magic link is redeemed, so the returned
    user's e-mail is verified.
    """
    if creds is None or creds.scheme.lower() != "bearer":
        raise Unauthenticated("missing bearer token")

    try:
        payload = decode_access_token(creds.credentials)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.info("rejected bearer token: %s", e.__class__.__name__)
        raise Unauthenticated("invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise Unauthenticated("user not found")

    return user
