from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from budgetup.auth.tokens import (
    hash_magic_token,
    issue_access_token,
    magic_link_expiry,
    new_magic_token,
)
from budgetup.clock import as_utc, now_utc
from budgetup.config import settings
from budgetup.db import get_db
from budgetup.models.auth_magic_link import AuthMagicLink
from budgetup.models.user import User
from budgetup.ratelimit import rate_limit
from budgetup.schemas.auth import AccessTokenOut, RedeemIn, RequestLinkIn, RequestLinkOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/request-link", response_model=RequestLinkOut)
def request_link(
    payload: RequestLinkIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:request_link",
            limit_per_window=settings.rate_limit_auth_request_link_per_min,
            window_seconds=60,
        )
    ),
) -> RequestLinkOut:
    email = payload.email.lower().strip()

    user = db.scalar(select(User).where(User.email == email))
    if user is None:
        user = User(email=email)
        db.add(user)
        db.flush()

    token = new_magic_token()
    db.add(
        AuthMagicLink(
            token_hash=hash_magic_token(token),
            user_id=user.id,
            expires_at=magic_link_expiry(),
            used_at=None,
        )
    )
    db.commit()
    logger.info("magic link issued user=%s", user.id)

    if settings.app_env == "prod":
        return RequestLinkOut(token=None, link=f"{settings.base_url}/auth/redeem?token={token}")

    return RequestLinkOut(sent=True, token=token, link=None)

@router.post("/redeem", response_model=AccessTokenOut)
def redeem(
    payload: RedeemIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit(
            "auth:redeem",
            limit_per_window=settings.rate_limit_auth_redeem_per_min,
            window_seconds=60,
        )
    ),
) -> AccessTokenOut:
    token_hash = hash_magic_token(payload.token.strip())
    now = now_utc()

    # atomic single-use + expiry gate
    stmt = (
        update(AuthMagicLink)
        .where(AuthMagicLink.token_hash == token_hash)
        .where(AuthMagicLink.used_at.is_(None))
        .where(AuthMagicLink.expires_at > now)
        .values(used_at=now)
        .returning(AuthMagicLink.user_id)
        .execution_options(synchronize_session=False)
    )

    user_id = db.scalar(stmt)
    if user_id is None:
        db.rollback()
        row = db.get(AuthMagicLink, token_hash)
        if row is None:
            raise HTTPException(status_code=400, detail="invalid token")
        if row.used_at is not None:
            raise HTTPException(status_code=400, detail="token already used")
        if as_utc(row.expires_at) <= now:
            raise HTTPException(status_code=400, detail="token expired")
        raise HTTPException(status_code=400, detail="invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=400, detail="invalid token")

    db.commit()
    return AccessTokenOut(
        access_token=issue_access_token(user.id),
        user_id=user.id,
        email=user.email,
    )
