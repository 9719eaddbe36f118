import base64
import logging
from typing import Optional, Protocol

from backend.services.exceptions import DownloadFailed, MissingStoragePath
from backend.utils.helpers import strip_data_uri

logger = logging.getLogger(__name__)


class BlobReader(Protocol):
    async def download(self, path: str) -> bytes: ...


async def fetch_encoded(storage: BlobReader, path: Optional[str]) -> str:
    """
    Baixa o currículo do Storage e devolve o conteúdo em base64 puro,
    pronto para ser enviado inline para a IA.

    Raises:
        MissingStoragePath: candidato sem caminho no Storage (não tenta baixar)
        DownloadFailed: qualquer falha no download; não há nova tentativa
    """
    if not path:
        raise MissingStoragePath("Caminho do arquivo ausente")

    try:
        data = await storage.download(path)
    except DownloadFailed:
        raise
    except Exception as e:
        raise DownloadFailed(f"Falha no download de {path}: {e}") from e

    if not data:
        raise DownloadFailed(f"Arquivo vazio no Storage: {path}")

    # Objetos gravados como data URI já estão em base64
    if data.startswith(b"data:"):
        return strip_data_uri(data.decode("ascii").strip())

    return base64.b64encode(data).decode("ascii")
