import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from sqlalchemy.orm import Session

from backend.database.models import Candidate, Job
from backend.services.exceptions import UploadFailed
from backend.services.pdf_service import has_selectable_text, is_valid_pdf
from backend.services.storage_service import SupabaseStorage
from backend.utils.helpers import storage_object_name

logger = logging.getLogger(__name__)


@dataclass
class UploadReport:
    created: List[Candidate] = field(default_factory=list)
    rejected: List[dict] = field(default_factory=list)
    warnings: List[dict] = field(default_factory=list)


async def store_resumes(
    db: Session,
    job: Job,
    files: List[Tuple[str, bytes]],
    storage: SupabaseStorage,
) -> UploadReport:
    """
    Envia os PDFs ao bucket e cria um candidato PENDING para cada um.

    Arquivos inválidos ou que falham no upload entram em `rejected` e não
    interrompem os demais.
    """
    report = UploadReport()

    for file_name, data in files:
        if not is_valid_pdf(data):
            report.rejected.append({"file_name": file_name, "reason": "Arquivo não é um PDF válido"})
            continue

        path = storage_object_name(file_name)
        try:
            await storage.upload(path, data)
        except UploadFailed as e:
            logger.error(f"❌ Falha no upload de {file_name}: {e}")
            report.rejected.append({"file_name": file_name, "reason": "Falha ao enviar arquivo"})
            continue

        if not has_selectable_text(data):
            report.warnings.append({"file_name": file_name, "reason": "PDF sem texto selecionável (escaneado)"})

        candidate = Candidate(job_id=job.id, filename=file_name, file_path=path, status="PENDING")
        db.add(candidate)
        report.created.append(candidate)

    if report.created:
        try:
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Erro ao registrar candidatos da vaga {job.id}: {e}")
            await storage.remove(c.file_path for c in report.created)
            raise
        for c in report.created:
            db.refresh(c)

    logger.info(
        f"📥 Vaga {job.id}: {len(report.created)} currículo(s) recebido(s), "
        f"{len(report.rejected)} rejeitado(s)"
    )
    return report
