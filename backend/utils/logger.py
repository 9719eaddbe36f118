import logging
import sys

# ======================================
# 🎯 Configuração de log global
# ======================================

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] — %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "backend", level: int | str = logging.INFO) -> logging.Logger:
    """
    Cria o logger padrão para API, worker RQ ou painel Streamlit.

    Os módulos usam logging.getLogger(__name__), então configurar o logger
    "backend" cobre todo o pacote.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Evita duplicação de handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    # Bibliotecas de rede muito verbosas
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    return logger
