from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Profile
from backend.utils.auth import get_current_user_claims


def get_user_id(claims: dict = Depends(get_current_user_claims)) -> str:
    user_id = claims.get("sub") or claims.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token (missing subject)")
    return user_id


def get_current_profile(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_user_id),
) -> Profile:
    """
    Perfil do usuário autenticado.
    Usuários bloqueados pelo admin não acessam o painel.
    """
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=404, detail="Perfil não encontrado. Conclua o cadastro.")
    if profile.status == "BLOCKED":
        raise HTTPException(status_code=403, detail="Usuário bloqueado")
    return profile


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if profile.role != "ADMIN":
        raise HTTPException(status_code=403, detail="Acesso restrito ao administrador")
    return profile
