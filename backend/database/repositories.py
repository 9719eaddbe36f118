"""
Acesso assíncrono às tabelas usadas pela análise em lote.

O SQLAlchemy é síncrono; cada chamada roda em asyncio.to_thread com uma
sessão própria, então várias análises podem gravar ao mesmo tempo sem
compartilhar sessão e cada ida ao banco é um ponto de suspensão.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database.connection import SessionLocal
from backend.database.models import Candidate as CandidateRow, Profile
from backend.schemas.candidate import AnalysisResult, Candidate, CandidateStatus
from backend.services.exceptions import PersistenceFailed

logger = logging.getLogger(__name__)


class CandidateStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def update(
        self,
        candidate_id: str,
        status: CandidateStatus,
        result: Optional[AnalysisResult] = None,
    ) -> None:
        """
        Grava status (e resultado, se COMPLETED) de um candidato.

        Raises:
            PersistenceFailed: se a linha não existir ou o banco falhar
        """
        await asyncio.to_thread(self._update, candidate_id, status, result)

    def _update(self, candidate_id: str, status: CandidateStatus, result: Optional[AnalysisResult]) -> None:
        db = self.session_factory()
        try:
            values = {"status": status.value}
            if status == CandidateStatus.COMPLETED and result is not None:
                values["analysis_result"] = result.to_record()
                values["match_score"] = result.match_score
            else:
                values["analysis_result"] = None
                values["match_score"] = None

            updated = (
                db.query(CandidateRow)
                .filter(CandidateRow.id == candidate_id)
                .update(values, synchronize_session=False)
            )
            if not updated:
                raise PersistenceFailed(f"Candidato {candidate_id} não encontrado")
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailed(f"Falha ao salvar candidato {candidate_id}: {e}") from e
        finally:
            db.close()

    async def claim(self, candidate_ids: List[str]) -> List[str]:
        """
        PENDING → ANALYZING no banco, só para quem ainda está PENDING.

        Retorna os ids reservados; os demais já foram pegos por outro lote
        (por exemplo o worker RQ do envio público).
        """
        return await asyncio.to_thread(self._claim, candidate_ids)

    def _claim(self, candidate_ids: List[str]) -> List[str]:
        db = self.session_factory()
        try:
            claimed = []
            for candidate_id in candidate_ids:
                updated = (
                    db.query(CandidateRow)
                    .filter(
                        CandidateRow.id == candidate_id,
                        CandidateRow.status == CandidateStatus.PENDING.value,
                    )
                    .update({"status": CandidateStatus.ANALYZING.value}, synchronize_session=False)
                )
                if updated:
                    claimed.append(candidate_id)
            db.commit()
            return claimed
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailed(f"Falha ao reservar candidatos: {e}") from e
        finally:
            db.close()

    async def list_by_job(self, job_id: str) -> List[Candidate]:
        return await asyncio.to_thread(self._list_by_job, job_id)

    def _list_by_job(self, job_id: str) -> List[Candidate]:
        db = self.session_factory()
        try:
            rows = (
                db.query(CandidateRow)
                .filter(CandidateRow.job_id == job_id)
                .order_by(CandidateRow.created_at.desc())
                .all()
            )
            return [Candidate.from_row(r) for r in rows]
        finally:
            db.close()


class ProfileStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    async def get_usage(self, user_id: str) -> Optional[tuple]:
        """Retorna (resume_usage, resume_limit) ou None se o perfil não existe."""
        return await asyncio.to_thread(self._get_usage, user_id)

    def _get_usage(self, user_id: str) -> Optional[tuple]:
        db = self.session_factory()
        try:
            profile = db.query(Profile).filter(Profile.id == user_id).first()
            if not profile:
                return None
            return profile.resume_usage or 0, profile.resume_limit or 0
        finally:
            db.close()

    async def add_resume_usage(self, user_id: str, amount: int) -> Optional[int]:
        """Incrementa resume_usage no próprio UPDATE e retorna o novo valor."""
        return await asyncio.to_thread(self._add_resume_usage, user_id, amount)

    def _add_resume_usage(self, user_id: str, amount: int) -> Optional[int]:
        db = self.session_factory()
        try:
            updated = db.query(Profile).filter(Profile.id == user_id).update(
                {
                    "resume_usage": func.coalesce(Profile.resume_usage, 0) + amount,
                    "updated_at": datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
            db.commit()
            if not updated:
                return None
            return db.query(Profile.resume_usage).filter(Profile.id == user_id).scalar()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailed(f"Falha ao atualizar uso do perfil {user_id}: {e}") from e
        finally:
            db.close()
