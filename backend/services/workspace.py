"""
Projeção em memória das vagas e candidatos vistos pelo painel.

O banco é a fonte da verdade. Esta projeção só é considerada consistente
logo após refresh(); entre checkpoints (início e fim do lote) ela recebe
atualizações otimistas e pode divergir do banco.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Protocol, Set

from backend.schemas.candidate import Candidate, CandidateStatus
from backend.schemas.job import JobView

logger = logging.getLogger(__name__)


class CandidateReader(Protocol):
    async def list_by_job(self, job_id: str) -> List[Candidate]: ...


@dataclass(frozen=True)
class StatusEvent:
    job_id: str
    candidate_id: str
    status: CandidateStatus


StatusListener = Callable[[StatusEvent], None]


class WorkspaceState:
    def __init__(
        self,
        store: CandidateReader,
        jobs: Iterable[JobView] = (),
        active_job_id: Optional[str] = None,
        resume_usage: Optional[int] = None,
    ):
        self.store = store
        self.jobs: List[JobView] = list(jobs)
        self.active_job: Optional[JobView] = None
        self.resume_usage = resume_usage
        self._stale: Set[str] = set()
        self._listeners: List[StatusListener] = []
        if active_job_id:
            self.activate(active_job_id)

    # ---------- leitura ----------

    def get_job(self, job_id: str) -> Optional[JobView]:
        if self.active_job and self.active_job.id == job_id:
            return self.active_job
        return next((j for j in self.jobs if j.id == job_id), None)

    def is_stale(self, job_id: str) -> bool:
        return job_id in self._stale

    def activate(self, job_id: str) -> None:
        self.active_job = next((j for j in self.jobs if j.id == job_id), None)

    # ---------- status stream ----------

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Registra um ouvinte de transições de status; retorna o cancelamento."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, job_id: str, candidate: Candidate) -> None:
        event = StatusEvent(job_id=job_id, candidate_id=candidate.id, status=candidate.status)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"⚠️ Ouvinte de status falhou: {e}")

    # ---------- escrita otimista ----------

    def _apply(self, job_id: str, change: Callable[[JobView], JobView]) -> None:
        if self.active_job and self.active_job.id == job_id:
            self.active_job = change(self.active_job)
        self.jobs = [change(j) if j.id == job_id else j for j in self.jobs]

    def mark_analyzing(self, job_id: str, candidate_ids: Iterable[str]) -> None:
        """PENDING → ANALYZING para os candidatos capturados no início do lote."""
        ids = set(candidate_ids)

        def change(job: JobView) -> JobView:
            return job.model_copy(update={"candidates": [
                c.with_status(CandidateStatus.ANALYZING)
                if c.id in ids and c.status == CandidateStatus.PENDING else c
                for c in job.candidates
            ]})

        self._apply(job_id, change)
        job = self.get_job(job_id)
        for c in (job.candidates if job else []):
            if c.id in ids:
                self._emit(job_id, c)

    def replace_candidate(self, job_id: str, candidate: Candidate) -> None:
        """Substitui só este candidato (por id) na vaga ativa e na lista global."""
        self._apply(job_id, lambda job: job.replace_candidate(candidate))
        self._emit(job_id, candidate)

    # ---------- checkpoints ----------

    def invalidate(self, job_id: str) -> None:
        self._stale.add(job_id)

    async def refresh(self, job_id: str) -> List[Candidate]:
        """Relê do banco os candidatos da vaga e substitui a projeção."""
        fresh = await self.store.list_by_job(job_id)
        self._apply(job_id, lambda job: job.model_copy(update={"candidates": list(fresh)}))
        self._stale.discard(job_id)
        return fresh
