import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError
from sqlalchemy.orm import Session

from backend.config import settings
from backend.database.connection import get_db
from backend.database.models import Announcement, Profile
from backend.schemas.user import AnnouncementCreate, AnnouncementOut, PlanOverride, ProfileOut, StatusOverride
from backend.services.billing import apply_plan, finance_summary
from backend.services.exceptions import UploadFailed
from backend.services.runner import get_marketing_storage
from backend.services.storage_service import SupabaseStorage, public_object_url
from backend.utils.helpers import storage_object_name
from backend.utils.profile import require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


def get_profile_or_404(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return profile


# ======================================================
# 👥 Usuários
# ======================================================
@router.get("/users")
def list_users(db: Session = Depends(get_db)):
    users = db.query(Profile).order_by(Profile.created_at.desc()).all()
    items = [ProfileOut.model_validate(u).model_dump() for u in users]
    return {"items": items, "count": len(items)}


@router.post("/users/{user_id}/status")
def set_user_status(user_id: str, data: StatusOverride, db: Session = Depends(get_db)):
    profile = get_profile_or_404(db, user_id)
    profile.status = data.status
    db.commit()
    logger.info(f"🔒 Status de {user_id} alterado para {data.status}")
    return {"id": user_id, "status": profile.status}


@router.post("/users/{user_id}/plan")
def set_user_plan(user_id: str, data: PlanOverride, db: Session = Depends(get_db)):
    """Troca manual de plano (aplica os limites do plano)."""
    profile = get_profile_or_404(db, user_id)
    try:
        apply_plan(profile, data.plan)
        db.commit()
        db.refresh(profile)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Erro ao alterar plano de {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao alterar plano: {e}")
    logger.info(f"💳 Plano de {user_id} alterado manualmente para {data.plan}")
    return ProfileOut.model_validate(profile).model_dump()


# ======================================================
# 📣 Anúncios
# ======================================================
@router.post("/announcements", status_code=201)
async def create_announcement(
    title: str = Form(...),
    target_plans: str = Form("FREE,MENSAL,ANUAL"),
    link_url: Optional[str] = Form(None),
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: SupabaseStorage = Depends(get_marketing_storage),
):
    path = storage_object_name(image.filename or "anuncio.png")
    try:
        data = AnnouncementCreate(
            title=title,
            image_path=path,
            link_url=link_url or None,
            target_plans=[p.strip().upper() for p in target_plans.split(",") if p.strip()],
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))

    try:
        await storage.upload(path, await image.read(), content_type=image.content_type or "image/png")
    except UploadFailed as e:
        logger.error(f"❌ Falha no upload da imagem do anúncio: {e}")
        raise HTTPException(status_code=502, detail="Falha ao enviar imagem")

    announcement = Announcement(**data.model_dump())
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return AnnouncementOut(
        id=announcement.id,
        title=announcement.title,
        image_url=public_object_url(settings.SUPABASE_URL, settings.MARKETING_BUCKET, announcement.image_path),
        link_url=announcement.link_url,
        is_active=announcement.is_active,
        target_plans=announcement.target_plans,
    ).model_dump()


@router.delete("/announcements/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    storage: SupabaseStorage = Depends(get_marketing_storage),
):
    announcement = db.query(Announcement).filter(Announcement.id == announcement_id).first()
    if not announcement:
        raise HTTPException(status_code=404, detail="Anúncio não encontrado")
    path = announcement.image_path
    db.delete(announcement)
    db.commit()
    await storage.remove([path])
    return {"deleted": announcement_id}


# ======================================================
# 💰 Financeiro
# ======================================================
@router.get("/finance")
def finance(db: Session = Depends(get_db)):
    plans = [p for (p,) in db.query(Profile.plan).filter(Profile.role != "ADMIN").all()]
    summary = finance_summary(plans)
    return {
        "plans": summary,
        "monthly_revenue": round(sum(item["revenue"] for item in summary.values()), 2),
        "paying_users": sum(item["count"] for name, item in summary.items() if name != "FREE"),
    }
