import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Profile
from backend.schemas.user import ProfileOut, UserRegister
from backend.services.billing import PLANS
from backend.utils.profile import get_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ========================================
# 📝 POST /auth/register - Criar Perfil
# ========================================
@router.post("/register")
def register(
    data: UserRegister,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
):
    """
    Cria o perfil (plano FREE) depois que o usuário já existe no Supabase Auth.

    Idempotente: se o perfil já existe, apenas o retorna.

    Returns:
        dict: {"success": True, "created": bool, "profile": {...}}
    """
    existing = db.query(Profile).filter(Profile.id == user_id).first()
    if existing:
        logger.info(f"ℹ️ Perfil {user_id} já cadastrado")
        return {
            "success": True,
            "created": False,
            "profile": ProfileOut.model_validate(existing).model_dump(),
        }

    free = PLANS["FREE"]
    try:
        profile = Profile(
            id=user_id,
            email=data.email,
            name=data.name,
            phone=data.phone,
            role="USER",
            status="ACTIVE",
            plan="FREE",
            job_limit=free.job_limit,
            resume_limit=free.resume_limit,
            resume_usage=0,
        )
        db.add(profile)
        db.commit()
        db.refresh(profile)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Erro ao criar perfil {user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao criar perfil: {str(e)}")

    logger.info(f"🎉 Perfil criado: {user_id} ({data.email})")
    return {
        "success": True,
        "created": True,
        "profile": ProfileOut.model_validate(profile).model_dump(),
    }
