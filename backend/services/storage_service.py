"""
Cliente assíncrono do Supabase Storage (API REST /storage/v1).

Usado pela análise em lote (download dos currículos), pelo upload de
currículos e pelas URLs de imagens dos anúncios.
"""

import logging
from typing import Iterable, Optional
from urllib.parse import quote

import httpx

from backend.services.exceptions import DownloadFailed, ObjectNotFound, UploadFailed

logger = logging.getLogger(__name__)


def public_object_url(base_url: str, bucket: str, path: str) -> str:
    """URL pública (buckets públicos, ex.: imagens de anúncios)."""
    return f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{quote(path.lstrip('/'))}"


class SupabaseStorage:
    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            headers={
                "Authorization": f"Bearer {service_key}",
                "apikey": service_key,
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SupabaseStorage":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _object_url(self, path: str) -> str:
        return f"/object/{self.bucket}/{quote(path.lstrip('/'))}"

    async def download(self, path: str) -> bytes:
        """
        Baixa o objeto do bucket.

        Raises:
            ObjectNotFound: 400/404 do Storage para caminho inexistente
            DownloadFailed: qualquer outra falha de rede ou HTTP
        """
        try:
            response = await self._client.get(self._object_url(path))
        except httpx.HTTPError as e:
            raise DownloadFailed(f"Erro de rede ao baixar {path}: {e}") from e

        if response.status_code in (400, 404):
            raise ObjectNotFound(f"Arquivo não encontrado no Storage: {path}")
        if response.is_error:
            raise DownloadFailed(f"Storage respondeu {response.status_code} para {path}")
        return response.content

    async def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> str:
        """Envia o arquivo (sem sobrescrever) e retorna o caminho gravado."""
        try:
            response = await self._client.post(
                self._object_url(path),
                content=data,
                headers={
                    "Content-Type": content_type,
                    "cache-control": "3600",
                    "x-upsert": "false",
                },
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"Erro de rede ao enviar {path}: {e}") from e

        if response.is_error:
            raise UploadFailed(f"Storage respondeu {response.status_code} ao enviar {path}: {response.text[:200]}")

        logger.info(f"📤 Arquivo enviado ao bucket {self.bucket}: {path}")
        return path

    async def remove(self, paths: Iterable[str]) -> None:
        """Remove objetos; falhas são apenas registradas (limpeza best-effort)."""
        prefixes = [p for p in paths if p]
        if not prefixes:
            return
        try:
            response = await self._client.request(
                "DELETE", f"/object/{self.bucket}", json={"prefixes": prefixes}
            )
            if response.is_error:
                logger.warning(f"⚠️ Storage respondeu {response.status_code} ao remover {len(prefixes)} arquivo(s)")
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Erro ao remover arquivos do Storage: {e}")

    async def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        """URL assinada para pré-visualização do currículo."""
        try:
            response = await self._client.post(
                f"/object/sign/{self.bucket}/{quote(path.lstrip('/'))}",
                json={"expiresIn": expires_in},
            )
        except httpx.HTTPError as e:
            raise DownloadFailed(f"Erro de rede ao assinar {path}: {e}") from e

        if response.status_code in (400, 404):
            raise ObjectNotFound(f"Arquivo não encontrado no Storage: {path}")
        if response.is_error:
            raise DownloadFailed(f"Storage respondeu {response.status_code} ao assinar {path}")

        signed = response.json().get("signedURL", "")
        return f"{self.base_url}/storage/v1{signed}"
