from redis import Redis
from rq import Queue, Worker

from backend.config import settings
from backend.tasks.tasks import QUEUE_NAME
from backend.utils.logger import setup_logger

logger = setup_logger("backend", level=settings.LOG_LEVEL)

listen = [QUEUE_NAME]


def main() -> None:
    conn = Redis.from_url(settings.REDIS_URL)
    logger.info(f"🚀 Worker iniciado ({', '.join(listen)}), aguardando tarefas...")
    worker = Worker([Queue(name, connection=conn) for name in listen], connection=conn)
    worker.work(with_scheduler=True)


if __name__ == "__main__":
    main()
