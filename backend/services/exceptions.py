class MissingCredential(ValueError):
    """Chave de API ausente ao construir um cliente externo."""


class MissingStoragePath(ValueError):
    """Candidato sem file_path: precondição do download."""


class DownloadFailed(Exception):
    """Falha ao baixar o arquivo do Storage (rede, permissão, etc.)."""


class ObjectNotFound(DownloadFailed):
    """O arquivo não existe no bucket."""


class UploadFailed(Exception):
    """Falha ao enviar o arquivo para o Storage."""


class PersistenceFailed(Exception):
    """Falha ao gravar no banco de dados."""
