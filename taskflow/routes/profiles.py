import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskflow.auth.deps import current_user_id
from taskflow.db import get_db
from taskflow.schemas.profiles import MeOut, ProfileOut, ProfileUpdateIn
from taskflow.services import profiles as profile_service

router = APIRouter(tags=["profiles"])

@router.get("/me", response_model=MeOut)
def me(
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> MeOut:
    p = profile_service.get_profile(db, actor_id, actor_id)
    return MeOut(profile=ProfileOut.model_validate(p), role=profile_service.my_role(db, actor_id))

@router.get("/profiles", response_model=list[ProfileOut])
def list_profiles(
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> list[ProfileOut]:
    return [ProfileOut.model_validate(p) for p in profile_service.list_profiles(db, actor_id)]

@router.get("/profiles/{profile_id}", response_model=ProfileOut)
def get_profile(
    profile_id: uuid.UUID,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> ProfileOut:
    return ProfileOut.model_validate(profile_service.get_profile(db, actor_id, profile_id))

@router.patch("/profiles/{profile_id}", response_model=ProfileOut)
def update_profile(
    profile_id: uuid.UUID,
    payload: ProfileUpdateIn,
    actor_id: uuid.UUID = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> ProfileOut:
    changes = payload.model_dump(exclude_unset=True)
    p = profile_service.update_profile(db, actor_id, profile_id, changes)
    return ProfileOut.model_validate(p)
