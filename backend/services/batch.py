"""
Análise em lote dos currículos pendentes de uma vaga.

Um asyncio.Queue é semeado com os candidatos PENDING capturados (e reservados
no banco) no início do lote e min(len(fila), max_concurrency) workers
consomem dele. Cada worker processa um candidato por vez (download → IA →
gravação); o lote termina quando todos os workers saem.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Optional

from backend.schemas.candidate import Candidate
from backend.schemas.job import JobView
from backend.services.document_service import BlobReader
from backend.services.pipeline import ResultCommitter, Scorer, process_candidate
from backend.services.quota import QuotaReconciler
from backend.services.workspace import WorkspaceState
from backend.utils.helpers import format_elapsed

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 20


class BatchState(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DONE = "DONE"


@dataclass
class BatchMetrics:
    is_analyzing: bool = False
    processed_count: int = 0
    time_taken: Optional[float] = None

    @property
    def formatted_time(self) -> Optional[str]:
        return format_elapsed(self.time_taken) if self.time_taken is not None else None

    def to_dict(self) -> dict:
        return {**asdict(self), "formatted_time": self.formatted_time}


class BatchAnalyzer:
    def __init__(
        self,
        *,
        storage: BlobReader,
        scorer: Scorer,
        workspace: WorkspaceState,
        committer: ResultCommitter,
        quota: Optional[QuotaReconciler] = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency deve ser >= 1")
        self.storage = storage
        self.scorer = scorer
        self.workspace = workspace
        self.committer = committer
        self.quota = quota
        self.max_concurrency = max_concurrency
        self.clock = clock

        self.state = BatchState.IDLE
        self.metrics = BatchMetrics()
        self.in_flight = 0

    async def run(self, job_id: str, user_id: Optional[str] = None) -> BatchMetrics:
        """
        Analisa todos os candidatos PENDING da vaga no momento da chamada.

        Sem pendentes, não faz nada (estado e métricas inalterados). O lote
        sempre chega a DONE: falhas ficam restritas ao candidato.
        """
        job = self.workspace.get_job(job_id)
        pending = job.pending() if job else []
        if pending:
            claimed = set(await self.committer.claim([c.id for c in pending]))
            if len(claimed) < len(pending):
                logger.warning(
                    f"⚠️ [batch] Vaga {job_id}: {len(pending) - len(claimed)} currículo(s) já em outro lote"
                )
            pending = [c for c in pending if c.id in claimed]
        if not pending:
            logger.info(f"ℹ️ [batch] Vaga {job_id} sem currículos pendentes")
            return self.metrics

        self.state = BatchState.RUNNING
        self.metrics = BatchMetrics(is_analyzing=True)
        started = self.clock()
        self.workspace.mark_analyzing(job_id, [c.id for c in pending])

        queue: asyncio.Queue = asyncio.Queue()
        for candidate in pending:
            queue.put_nowait(candidate)

        n_workers = min(len(pending), self.max_concurrency)
        logger.info(f"🚀 [batch] Vaga {job_id}: {len(pending)} currículo(s), {n_workers} worker(s)")

        await asyncio.gather(*(self._worker(job, queue) for _ in range(n_workers)))

        self.metrics.time_taken = self.clock() - started
        self.metrics.is_analyzing = False
        self.state = BatchState.DONE
        logger.info(
            f"✅ [batch] Vaga {job_id} concluída: {self.metrics.processed_count}/{len(pending)} "
            f"em {self.metrics.formatted_time}"
        )

        await self._finish(job_id, user_id)
        return self.metrics

    async def _worker(self, job: JobView, queue: asyncio.Queue) -> None:
        while True:
            try:
                candidate: Candidate = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            self.in_flight += 1
            try:
                completed = await process_candidate(
                    candidate,
                    job,
                    storage=self.storage,
                    scorer=self.scorer,
                    committer=self.committer,
                )
            finally:
                self.in_flight -= 1
                queue.task_done()

            if completed:
                self.metrics.processed_count += 1

    async def _finish(self, job_id: str, user_id: Optional[str]) -> None:
        """Checkpoint de fim de lote: relê a vaga do banco e contabiliza a cota."""
        self.workspace.invalidate(job_id)
        try:
            await self.workspace.refresh(job_id)
        except Exception as e:
            logger.error(f"❌ [batch] Falha ao recarregar candidatos da vaga {job_id}: {e}")

        if self.quota and user_id:
            try:
                usage = await self.quota.reconcile(user_id, self.metrics.processed_count)
            except Exception as e:
                logger.error(f"❌ [batch] Falha ao atualizar cota de {user_id}: {e}")
            else:
                if usage is not None:
                    self.workspace.resume_usage = usage
