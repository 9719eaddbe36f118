import logging
from functools import lru_cache
from typing import AsyncIterator, Callable, Optional

from sqlalchemy.orm import Session

from backend.config import settings
from backend.database.connection import SessionLocal
from backend.database.models import Job, Profile
from backend.database.repositories import CandidateStore, ProfileStore
from backend.schemas.job import JobView
from backend.services.ai_service import ResumeScoringClient
from backend.services.batch import BatchAnalyzer, BatchMetrics
from backend.services.pipeline import ResultCommitter, Scorer
from backend.services.quota import QuotaReconciler
from backend.services.storage_service import SupabaseStorage
from backend.services.workspace import WorkspaceState

logger = logging.getLogger(__name__)


@lru_cache
def get_scorer() -> ResumeScoringClient:
    """Cliente de IA único do processo, criado com a chave validada."""
    return ResumeScoringClient.from_settings(settings)


def resumes_storage() -> SupabaseStorage:
    return SupabaseStorage(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY,
        settings.RESUMES_BUCKET,
        timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )


def marketing_storage() -> SupabaseStorage:
    return SupabaseStorage(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY,
        settings.MARKETING_BUCKET,
        timeout=settings.STORAGE_TIMEOUT_SECONDS,
    )


async def get_resumes_storage() -> AsyncIterator[SupabaseStorage]:
    """Dependência FastAPI: cliente do bucket de currículos por requisição."""
    async with resumes_storage() as storage:
        yield storage


async def get_marketing_storage() -> AsyncIterator[SupabaseStorage]:
    async with marketing_storage() as storage:
        yield storage


async def load_workspace(
    job_id: str,
    user_id: Optional[str],
    session_factory: Callable[[], Session] = SessionLocal,
) -> Optional[WorkspaceState]:
    """Checkpoint de início de lote: projeção da vaga lida do banco."""
    store = CandidateStore(session_factory)

    db = session_factory()
    try:
        job = db.query(Job).filter(Job.id == job_id).first()
        if not job:
            return None
        view = JobView(
            id=job.id,
            title=job.title,
            criteria=job.criteria or "",
            description=job.description or "",
        )
        usage = None
        if user_id:
            usage = db.query(Profile.resume_usage).filter(Profile.id == user_id).scalar()
    finally:
        db.close()

    workspace = WorkspaceState(store, jobs=[view], active_job_id=job_id, resume_usage=usage)
    await workspace.refresh(job_id)
    return workspace


def build_analyzer(
    workspace: WorkspaceState,
    *,
    storage: SupabaseStorage,
    scorer: Scorer,
    session_factory: Callable[[], Session] = SessionLocal,
    max_concurrency: Optional[int] = None,
) -> BatchAnalyzer:
    return BatchAnalyzer(
        storage=storage,
        scorer=scorer,
        workspace=workspace,
        committer=ResultCommitter(CandidateStore(session_factory), workspace),
        quota=QuotaReconciler(ProfileStore(session_factory)),
        max_concurrency=max_concurrency or settings.ANALYSIS_MAX_CONCURRENCY,
    )


async def run_job_analysis(
    job_id: str,
    user_id: Optional[str],
    *,
    scorer: Optional[Scorer] = None,
    session_factory: Callable[[], Session] = SessionLocal,
    on_start: Optional[Callable[[BatchAnalyzer], None]] = None,
) -> Optional[BatchMetrics]:
    """
    Carrega a vaga, roda o lote e contabiliza a cota.

    Returns:
        métricas do lote; None se a vaga não existe
    """
    workspace = await load_workspace(job_id, user_id, session_factory)
    if workspace is None:
        logger.warning(f"⚠️ [runner] Vaga {job_id} não encontrada")
        return None

    async with resumes_storage() as storage:
        analyzer = build_analyzer(
            workspace,
            storage=storage,
            scorer=scorer or get_scorer(),
            session_factory=session_factory,
        )
        if on_start:
            on_start(analyzer)
        return await analyzer.run(job_id, user_id)
