import logging
from typing import Dict, Set

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Profile
from backend.routes.jobs import get_owned_job
from backend.services.batch import BatchAnalyzer
from backend.services.runner import run_job_analysis
from backend.utils.profile import get_current_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Analysis"])

# Último lote de cada vaga neste processo (para acompanhamento ao vivo)
_batches: Dict[str, BatchAnalyzer] = {}
# Vagas com lote sendo iniciado (entre a requisição e o on_start)
_starting: Set[str] = set()


def is_running(job_id: str) -> bool:
    if job_id in _starting:
        return True
    analyzer = _batches.get(job_id)
    return analyzer is not None and analyzer.metrics.is_analyzing


def forget(job_id: str) -> None:
    """Descarta o último lote registrado da vaga (vaga removida)."""
    _batches.pop(job_id, None)


# ======================================================
# 🚀 POST /jobs/{id}/analysis - Analisar pendentes
# ======================================================
@router.post("/{job_id}/analysis")
async def start_analysis(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    """
    Analisa todos os candidatos PENDING da vaga e responde ao final do lote.

    Returns:
        dict: métricas do lote (processed_count, time_taken, formatted_time)
    """
    job = get_owned_job(db, job_id, profile)
    if is_running(job.id):
        raise HTTPException(status_code=409, detail="Já existe uma análise em andamento para esta vaga")

    def register(analyzer: BatchAnalyzer) -> None:
        _batches[job.id] = analyzer
        _starting.discard(job.id)

    _starting.add(job.id)
    try:
        metrics = await run_job_analysis(job.id, job.user_id, on_start=register)
    except Exception as e:
        logger.error(f"❌ Erro na análise da vaga {job.id}: {e}")
        raise HTTPException(status_code=500, detail=f"Erro na análise: {e}")
    finally:
        _starting.discard(job.id)

    if metrics is None:
        raise HTTPException(status_code=404, detail="Vaga não encontrada")
    return metrics.to_dict()


# ======================================================
# 📊 GET /jobs/{id}/analysis - Progresso do lote
# ======================================================
@router.get("/{job_id}/analysis")
def analysis_status(
    job_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    job = get_owned_job(db, job_id, profile)
    analyzer = _batches.get(job.id)
    if analyzer is None:
        return {"state": "IDLE", "metrics": None, "in_flight": 0, "candidates": []}

    view = analyzer.workspace.get_job(job.id)
    candidates = [
        {"id": c.id, "file_name": c.file_name, "status": c.status.value}
        for c in (view.candidates if view else [])
    ]
    return {
        "state": analyzer.state.value,
        "metrics": analyzer.metrics.to_dict(),
        "in_flight": analyzer.in_flight,
        "resume_usage": analyzer.workspace.resume_usage,
        "candidates": candidates,
    }
