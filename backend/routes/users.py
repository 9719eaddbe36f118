import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Announcement, Profile
from backend.schemas.user import AnnouncementOut, ProfileOut, ProfileUpdate
from backend.config import settings
from backend.services.storage_service import public_object_url
from backend.utils.profile import get_current_profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.get("/users/me", response_model=ProfileOut)
def get_me(profile: Profile = Depends(get_current_profile)):
    """Perfil, plano, limites e uso do usuário autenticado."""
    return profile


@router.put("/users/me", response_model=ProfileOut)
def update_me(
    data: ProfileUpdate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    try:
        if data.name is not None:
            profile.name = data.name
        if data.phone is not None:
            profile.phone = data.phone
        db.commit()
        db.refresh(profile)
        return profile
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Erro ao atualizar perfil {profile.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao atualizar perfil: {e}")


@router.get("/announcements")
def list_announcements(
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """Anúncios ativos destinados ao plano do usuário (sem plano = FREE)."""
    plan = profile.plan or "FREE"
    rows = (
        db.query(Announcement)
        .filter(Announcement.is_active.is_(True))
        .order_by(Announcement.created_at.desc())
        .all()
    )
    items = [
        AnnouncementOut(
            id=a.id,
            title=a.title,
            image_url=public_object_url(settings.SUPABASE_URL, settings.MARKETING_BUCKET, a.image_path),
            link_url=a.link_url,
            is_active=a.is_active,
            target_plans=a.target_plans or ["FREE", "MENSAL", "ANUAL"],
        ).model_dump()
        for a in rows
        if plan in (a.target_plans or ["FREE", "MENSAL", "ANUAL"])
    ]
    return {"items": items, "count": len(items)}
