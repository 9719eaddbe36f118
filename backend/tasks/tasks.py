import asyncio
import logging
from typing import Optional

from redis import Redis
from rq import Queue

from backend.config import settings
from backend.services.runner import run_job_analysis

logger = logging.getLogger(__name__)

QUEUE_NAME = "default"


# ======================================================
# 🤖 Task: Analisar os pendentes de uma vaga
# ======================================================
def run_batch_analysis_task(job_id: str, user_id: Optional[str]) -> Optional[dict]:
    """
    Executa o lote no worker RQ (processo síncrono, loop próprio).
    """
    logger.info(f"🤖 [run_batch_analysis_task] Iniciando lote da vaga {job_id}")
    metrics = asyncio.run(run_job_analysis(job_id, user_id))
    if metrics is None:
        logger.warning(f"⚠️ [run_batch_analysis_task] Vaga {job_id} não encontrada")
        return None
    logger.info(
        f"✅ [run_batch_analysis_task] Vaga {job_id}: {metrics.processed_count} "
        f"analisado(s) em {metrics.formatted_time}"
    )
    return metrics.to_dict()


# ======================================================
# 🚀 Enfileirar lote
# ======================================================
def get_queue() -> Queue:
    return Queue(QUEUE_NAME, connection=Redis.from_url(settings.REDIS_URL))


def enqueue_batch_analysis(job_id: str, user_id: Optional[str]) -> str:
    """Enfileira a análise da vaga e retorna o id do job RQ."""
    rq_job = get_queue().enqueue(run_batch_analysis_task, job_id, user_id)
    logger.info(f"✅ [enqueue_batch_analysis] Lote enfileirado para {job_id} ({rq_job.id})")
    return rq_job.id
