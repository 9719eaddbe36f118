import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Candidate as CandidateRow, Job, Profile
from backend.routes.analysis import is_running
from backend.routes.jobs import get_owned_job
from backend.schemas.candidate import Candidate, CandidateOut, CandidateStatus
from backend.services.exceptions import DownloadFailed, ObjectNotFound
from backend.services.runner import get_resumes_storage
from backend.services.storage_service import SupabaseStorage
from backend.services.upload_service import store_resumes
from backend.utils.profile import get_current_profile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Candidates"])

PREVIEW_EXPIRES_IN = 3600


def serialize_candidate(row: CandidateRow) -> dict:
    return CandidateOut.from_candidate(Candidate.from_row(row)).model_dump(mode="json")


def get_owned_candidate(db: Session, candidate_id: str, profile: Profile) -> CandidateRow:
    q = db.query(CandidateRow).join(Job).filter(CandidateRow.id == candidate_id)
    if profile.role != "ADMIN":
        q = q.filter(Job.user_id == profile.id)
    candidate = q.first()
    if not candidate:
        raise HTTPException(status_code=404, detail="Candidato não encontrado")
    return candidate


# ======================================================
# 📋 Candidatos da vaga (mais recentes primeiro)
# ======================================================
@router.get("/jobs/{job_id}/candidates")
def list_candidates(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    job = get_owned_job(db, job_id, profile)
    rows = (
        db.query(CandidateRow)
        .filter(CandidateRow.job_id == job.id)
        .order_by(CandidateRow.created_at.desc())
        .all()
    )
    items = [serialize_candidate(r) for r in rows]
    return {"items": items, "count": len(items)}


# ======================================================
# 📤 Upload de currículos (vários PDFs por vez)
# ======================================================
@router.post("/jobs/{job_id}/candidates", status_code=201)
async def upload_candidates(
    job_id: str,
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    storage: SupabaseStorage = Depends(get_resumes_storage),
):
    """
    Salva os PDFs no Storage e cria os candidatos como PENDING.
    A análise é disparada depois, em lote, por POST /jobs/{id}/analysis.
    """
    job = get_owned_job(db, job_id, profile)
    payload = [(f.filename or "curriculo.pdf", await f.read()) for f in files]

    try:
        report = await store_resumes(db, job, payload, storage)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Erro ao registrar currículos: {e}")

    if not report.created and report.rejected:
        raise HTTPException(
            status_code=400,
            detail={"message": "Nenhum currículo válido enviado", "rejected": report.rejected},
        )

    return {
        "created": [serialize_candidate(c) for c in report.created],
        "rejected": report.rejected,
        "warnings": report.warnings,
    }


@router.delete("/jobs/{job_id}/candidates")
async def clear_candidates(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    storage: SupabaseStorage = Depends(get_resumes_storage),
):
    job = get_owned_job(db, job_id, profile)
    rows = db.query(CandidateRow).filter(CandidateRow.job_id == job.id).all()
    paths = [r.file_path for r in rows]
    for r in rows:
        db.delete(r)
    db.commit()
    await storage.remove(paths)
    logger.info(f"🧹 Vaga {job.id}: {len(rows)} candidato(s) removido(s)")
    return {"deleted": len(rows)}


@router.delete("/candidates/{candidate_id}")
async def delete_candidate(
    candidate_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    storage: SupabaseStorage = Depends(get_resumes_storage),
):
    candidate = get_owned_candidate(db, candidate_id, profile)
    path = candidate.file_path
    db.delete(candidate)
    db.commit()
    await storage.remove([path])
    return {"deleted": candidate_id}


@router.post("/candidates/{candidate_id}/select")
def toggle_selection(
    candidate_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    candidate = get_owned_candidate(db, candidate_id, profile)
    candidate.is_selected = not candidate.is_selected
    db.commit()
    return {"id": candidate.id, "is_selected": candidate.is_selected}


@router.post("/candidates/{candidate_id}/retry")
def retry_candidate(
    candidate_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """
    Devolve um candidato para a fila (PENDING) do próximo lote.

    Aceita ERROR e também ANALYZING sem lote ativo na vaga (reserva que
    ficou presa após um worker cair).
    """
    candidate = get_owned_candidate(db, candidate_id, profile)
    stuck = candidate.status == CandidateStatus.ANALYZING.value and not is_running(candidate.job_id)
    if candidate.status != CandidateStatus.ERROR.value and not stuck:
        raise HTTPException(status_code=409, detail="Apenas candidatos com erro ou travados em análise podem ser reprocessados")
    candidate.status = CandidateStatus.PENDING.value
    candidate.analysis_result = None
    candidate.match_score = None
    db.commit()
    db.refresh(candidate)
    return serialize_candidate(candidate)


@router.get("/candidates/{candidate_id}/preview")
async def preview_candidate(
    candidate_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    storage: SupabaseStorage = Depends(get_resumes_storage),
):
    candidate = get_owned_candidate(db, candidate_id, profile)
    if not candidate.file_path:
        raise HTTPException(status_code=404, detail="Currículo sem arquivo no Storage")
    try:
        url = await storage.create_signed_url(candidate.file_path, PREVIEW_EXPIRES_IN)
    except ObjectNotFound:
        raise HTTPException(status_code=404, detail="Arquivo não encontrado no Storage")
    except DownloadFailed as e:
        logger.error(f"❌ Erro ao gerar URL de {candidate_id}: {e}")
        raise HTTPException(status_code=502, detail="Falha ao acessar o Storage")
    return {"id": candidate.id, "url": url, "expires_in": PREVIEW_EXPIRES_IN}
