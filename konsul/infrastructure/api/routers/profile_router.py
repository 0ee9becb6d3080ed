# konsul/infrastructure/api/routers/profile_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import config
from konsul.domain.models.profile import UserProfile
from konsul.domain.ports.profile_repository import ProfileRepository
from konsul.infrastructure.api.dependencies import get_profile_repo, get_user_id
from konsul.infrastructure.persistence.database import get_db

router = APIRouter(prefix=f"{config.API_PREFIX}/perfil", tags=["Perfil"])


@router.get("/", response_model=UserProfile, summary="Perfil del negocio")
def get_profile(
    user_id: str = Depends(get_user_id),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
):
    # Un usuario sin perfil guardado tributa como persona natural.
    return profile_repo.get_profile(user_id) or UserProfile()


@router.put("/", response_model=UserProfile, summary="Actualizar el perfil y el régimen fiscal")
def update_profile(
    profile: UserProfile,
    user_id: str = Depends(get_user_id),
    profile_repo: ProfileRepository = Depends(get_profile_repo),
    db: Session = Depends(get_db),
):
    saved = profile_repo.save_profile(user_id, profile)
    db.commit()
    return saved
