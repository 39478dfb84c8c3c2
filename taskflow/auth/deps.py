import logging
import uuid

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskflow.auth.tokens import decode_access_token
from taskflow.db import get_db
from taskflow.models.user import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or creds.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="missing bearer token")

    try:
        payload = decode_access_token(creds.credentials)
        user_id = uuid.UUID(payload["sub"])
    except Exception as e:
        logger.info("rejected bearer token: %s", e.__class__.__name__)
        raise HTTPException(status_code=401, detail="invalid token")

    # a token can outlive its identity
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="user not found")

    return user

def current_user_id(user: User = Depends(get_current_user)) -> uuid.UUID:
    return user.id
