from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.auth.tokens import (
    as_utc,
    hash_magic_token,
    issue_access_token,
    magic_link_expiry,
    new_magic_token,
    now_utc,
)
from taskflow.config import settings
from taskflow.db import get_db
from taskflow.models.auth_magic_link import AuthMagicLink
from taskflow.models.user import User
from taskflow.ratelimit import rate_limit
from taskflow.schemas.auth import (
    AccessTokenOut,
    RedeemIn,
    RequestLinkIn,
    RequestLinkOut,
    SignupIn,
    SignupOut,
)
from taskflow.services.provisioning import register_identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

def _issue_link(db: Session, user: User) -> tuple[str | None, str | None]:
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

    # outside dev the token only travels inside the emailed link
    if settings.app_env == "prod":
        return None, f"{settings.base_url}/auth/redeem?token={token}"
    return token, None

@router.post("/signup", response_model=SignupOut)
def signup(
    payload: SignupIn,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("auth:signup", limit_per_window=settings.rate_limit_auth_signup_per_min)),
) -> SignupOut:
    metadata = {"full_name": payload.full_name, "role": payload.role}
    user, created = register_identity(db, payload.email, {k: v for k, v in metadata.items() if v is not None})
    if not created:
        # existing identities sign in through /auth/request-link
        logger.info("signup for already registered identity %s", user.id)
        return SignupOut(user_id=user.id, created=False)

    token, link = _issue_link(db, user)
    return SignupOut(user_id=user.id, created=created, token=token, link=link)

@router.post("/request-link", response_model=RequestLinkOut)
def request_link(
    payload: RequestLinkIn,
    db: Session = Depends(get_db),
    _: None = Depends(
        rate_limit("auth:request_link", limit_per_window=settings.rate_limit_auth_request_link_per_min)
    ),
) -> RequestLinkOut:
    # first sign-in registers the identity with the default role
    user, _created = register_identity(db, payload.email)

    token, link = _issue_link(db, user)
    return RequestLinkOut(sent=True, token=token, link=link)

@router.post("/redeem", response_model=AccessTokenOut)
def redeem(
    payload: RedeemIn,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit("auth:redeem", limit_per_window=settings.rate_limit_auth_redeem_per_min)),
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
    logger.info("magic link redeemed for %s", user.id)
    return AccessTokenOut(access_token=issue_access_token(user.id, user.email))
