import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Job, Profile
from backend.schemas.job import JobCreate, JobSettings, JobUpdate
from backend.services.billing import is_unlimited
from backend.utils.helpers import generate_short_code
from backend.utils.profile import get_current_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])

SHORT_CODE_ATTEMPTS = 5


def serialize_job(j: Job) -> dict:
    return {
        "id": j.id,
        "title": j.title,
        "description": j.description or "",
        "criteria": j.criteria or "",
        "short_code": j.short_code,
        "is_pinned": bool(j.is_pinned),
        "auto_analyze": bool(j.auto_analyze),
        "is_paused": bool(j.is_paused),
        "candidates_count": len(j.candidates),
        "created_at": j.created_at.isoformat() if getattr(j, "created_at", None) else None,
    }


def get_owned_job(db: Session, job_id: str, profile: Profile) -> Job:
    """Vaga do usuário (admin enxerga todas)."""
    q = db.query(Job).filter(Job.id == job_id)
    if profile.role != "ADMIN":
        q = q.filter(Job.user_id == profile.id)
    job = q.first()
    if not job:
        raise HTTPException(status_code=404, detail="Vaga não encontrada")
    return job


@router.get("/")
def list_jobs(
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    jobs = (
        db.query(Job)
        .filter(Job.user_id == profile.id)
        .order_by(Job.is_pinned.desc(), Job.created_at.desc())
        .all()
    )
    return {
        "jobs": [serialize_job(j) for j in jobs],
        "job_limit": profile.job_limit,
    }


@router.post("/", status_code=201)
def create_job(
    job: JobCreate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    if not is_unlimited(profile.job_limit):
        count = db.query(Job).filter(Job.user_id == profile.id).count()
        if count >= profile.job_limit:
            raise HTTPException(
                status_code=403,
                detail=f"Limite de vagas do plano {profile.plan} atingido ({profile.job_limit}).",
            )

    # short_code é único; colisões são raras, tenta alguns códigos
    for _ in range(SHORT_CODE_ATTEMPTS):
        job_obj = Job(
            user_id=profile.id,
            title=job.title,
            description=job.description,
            criteria=job.criteria,
            short_code=generate_short_code(),
        )
        db.add(job_obj)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            continue
        db.refresh(job_obj)
        logger.info(f"✅ Vaga criada: {job_obj.id} (short_code={job_obj.short_code})")
        return {"message": "Vaga criada com sucesso!", "job": serialize_job(job_obj)}

    logger.error(f"❌ Não foi possível gerar short_code único para {profile.id}")
    raise HTTPException(status_code=500, detail="Erro ao criar vaga: código curto indisponível")


@router.put("/{job_id}")
def update_job(
    job_id: str,
    data: JobUpdate,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    job = get_owned_job(db, job_id, profile)
    for field, value in data.model_dump(exclude_none=True).items():
        setattr(job, field, value)
    try:
        db.commit()
        db.refresh(job)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Erro ao atualizar vaga {job_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Erro ao atualizar vaga: {e}")
    return {"job": serialize_job(job)}


@router.patch("/{job_id}/settings")
def update_job_settings(
    job_id: str,
    data: JobSettings,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """Liga/desliga análise automática e pausa de recebimento pelo link público."""
    job = get_owned_job(db, job_id, profile)
    if data.auto_analyze is not None:
        job.auto_analyze = data.auto_analyze
    if data.is_paused is not None:
        job.is_paused = data.is_paused
    db.commit()
    db.refresh(job)
    return {"job": serialize_job(job)}


@router.post("/{job_id}/pin")
def toggle_pin(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    job = get_owned_job(db, job_id, profile)
    job.is_pinned = not job.is_pinned
    db.commit()
    return {"id": job.id, "is_pinned": job.is_pinned}


@router.delete("/{job_id}")
def delete_job(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    # import local: analysis importa get_owned_job deste módulo
    from backend.routes import analysis

    job = get_owned_job(db, job_id, profile)
    if analysis.is_running(job.id):
        raise HTTPException(status_code=409, detail="Aguarde a análise em andamento terminar")
    db.delete(job)
    db.commit()
    analysis.forget(job.id)
    logger.info(f"🗑️ Vaga removida: {job_id}")
    return {"deleted": job_id}
