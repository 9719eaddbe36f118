import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Job
from backend.services.runner import get_resumes_storage
from backend.services.storage_service import SupabaseStorage
from backend.services.upload_service import store_resumes
from backend.tasks.tasks import enqueue_batch_analysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["Public"])


def get_job_by_code(db: Session, short_code: str) -> Job:
    job = db.query(Job).filter(Job.short_code == short_code).first()
    if not job:
        raise HTTPException(status_code=404, detail="Link de vaga inválido")
    return job


@router.get("/jobs/{short_code}")
def public_job(short_code: str, db: Session = Depends(get_db)):
    """Dados mínimos da vaga para a tela de envio do candidato."""
    job = get_job_by_code(db, short_code)
    return {
        "title": job.title,
        "description": job.description or "",
        "is_paused": bool(job.is_paused),
    }


# ======================================================
# 📨 Candidato envia o próprio currículo (sem login)
# ======================================================
@router.post("/jobs/{short_code}/candidates", status_code=201)
async def public_upload(
    short_code: str,
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    storage: SupabaseStorage = Depends(get_resumes_storage),
):
    job = get_job_by_code(db, short_code)
    if job.is_paused:
        raise HTTPException(status_code=423, detail="Esta vaga não está recebendo currículos no momento")

    payload = [(f.filename or "curriculo.pdf", await f.read()) for f in files]
    try:
        report = await store_resumes(db, job, payload, storage)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erro ao registrar currículo: {e}")

    if not report.created:
        raise HTTPException(status_code=400, detail="Envie um arquivo PDF válido")

    queued = False
    if job.auto_analyze:
        try:
            enqueue_batch_analysis(job.id, job.user_id)
            queued = True
        except Exception as e:
            # o currículo já está salvo como PENDING; o recrutador pode analisar depois
            logger.error(f"❌ Não foi possível enfileirar análise da vaga {job.id}: {e}")

    return {"received": len(report.created), "queued": queued}
