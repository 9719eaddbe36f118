import logging
from typing import List, Optional, Protocol

from backend.schemas.candidate import AnalysisResult, Candidate, CandidateStatus
from backend.schemas.job import JobView
from backend.services.ai_service import ScoreOutcome
from backend.services.document_service import BlobReader, fetch_encoded
from backend.services.workspace import WorkspaceState

logger = logging.getLogger(__name__)


class CandidateWriter(Protocol):
    async def update(
        self, candidate_id: str, status: CandidateStatus, result: Optional[AnalysisResult] = None
    ) -> None: ...

    async def claim(self, candidate_ids: List[str]) -> List[str]: ...


class Scorer(Protocol):
    async def evaluate(self, document: str, job_title: str, criteria: str) -> ScoreOutcome: ...


class ResultCommitter:
    """
    Grava o desfecho de UM candidato e reconcilia a projeção local só
    para ele. Seguro para rodar em paralelo com outros candidatos.
    """

    def __init__(self, store: CandidateWriter, workspace: WorkspaceState):
        self.store = store
        self.workspace = workspace

    async def claim(self, candidate_ids: List[str]) -> List[str]:
        """Reserva no banco os candidatos do lote; se a reserva falhar, segue com todos."""
        try:
            return await self.store.claim(candidate_ids)
        except Exception as e:
            logger.error(f"❌ [claim] Falha ao reservar candidatos, seguindo sem reserva: {e}")
            return list(candidate_ids)

    async def commit(self, job_id: str, candidate: Candidate, result: Optional[AnalysisResult]) -> bool:
        """
        result=None marca ERROR. Retorna True apenas se COMPLETED foi gravado;
        falha ao gravar um resultado válido também vira ERROR.
        """
        if result is not None:
            try:
                await self.store.update(candidate.id, CandidateStatus.COMPLETED, result)
            except Exception as e:
                logger.error(f"❌ [commit] Falha ao salvar análise de {candidate.id}: {e}")
            else:
                self.workspace.replace_candidate(job_id, candidate.with_status(CandidateStatus.COMPLETED, result))
                return True

        try:
            await self.store.update(candidate.id, CandidateStatus.ERROR)
        except Exception as e:
            logger.error(f"❌ [commit] Falha ao marcar ERROR em {candidate.id}: {e}")

        self.workspace.replace_candidate(job_id, candidate.with_status(CandidateStatus.ERROR))
        return False


async def process_candidate(
    candidate: Candidate,
    job: JobView,
    *,
    storage: BlobReader,
    scorer: Scorer,
    committer: ResultCommitter,
) -> bool:
    """
    Pipeline de um candidato: download → IA → gravação.

    Nunca propaga exceção: qualquer falha termina em ERROR só para este
    candidato. Retorna True quando o candidato terminou COMPLETED.
    """
    try:
        document = await fetch_encoded(storage, candidate.file_path)
        outcome = await scorer.evaluate(document, job.title, job.criteria)
    except Exception as e:
        logger.error(f"❌ [process_candidate] {candidate.file_name} ({candidate.id}): {e}")
        return await committer.commit(job.id, candidate, None)

    if not outcome.ok:
        # resultado sentinela: gravado como COMPLETED para manter o formato uniforme
        logger.error(f"❌ [process_candidate] IA não analisou {candidate.file_name}: {outcome.error}")

    return await committer.commit(job.id, candidate, outcome.result)
