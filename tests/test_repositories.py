"""
Stores assíncronos contra o SQLite em memória.
"""

import pytest

from backend.database.models import Candidate as CandidateRow, Profile
from backend.database.repositories import CandidateStore, ProfileStore
from backend.schemas.candidate import CandidateStatus
from backend.services.exceptions import PersistenceFailed
from tests.fakes import make_result


@pytest.fixture
def candidate_row(db_session, job):
    row = CandidateRow(id="c1", job_id=job.id, filename="cv.pdf", file_path="1_cv.pdf")
    db_session.add(row)
    db_session.commit()
    return row


class TestCandidateStore:
    async def test_completed_writes_result_and_score(self, db_session, session_factory, candidate_row):
        await CandidateStore(session_factory).update("c1", CandidateStatus.COMPLETED, make_result(score=7.5))

        db_session.expire_all()
        row = db_session.get(CandidateRow, "c1")
        assert row.status == "COMPLETED"
        assert row.match_score == 7.5
        assert row.analysis_result["candidateName"] == "Maria Souza"

    async def test_error_clears_result(self, db_session, session_factory, candidate_row):
        store = CandidateStore(session_factory)
        await store.update("c1", CandidateStatus.COMPLETED, make_result())
        await store.update("c1", CandidateStatus.ERROR)

        db_session.expire_all()
        row = db_session.get(CandidateRow, "c1")
        assert row.status == "ERROR"
        assert row.analysis_result is None
        assert row.match_score is None

    async def test_unknown_candidate_raises(self, session_factory, candidate_row):
        with pytest.raises(PersistenceFailed):
            await CandidateStore(session_factory).update("nao-existe", CandidateStatus.ERROR)

    async def test_claim_takes_pending_only_once(self, db_session, session_factory, job, candidate_row):
        db_session.add(CandidateRow(id="c2", job_id=job.id, filename="b.pdf", file_path="2_b.pdf", status="ERROR"))
        db_session.commit()
        store = CandidateStore(session_factory)

        first = await store.claim(["c1", "c2"])
        second = await store.claim(["c1"])

        assert first == ["c1"]
        assert second == []
        db_session.expire_all()
        assert db_session.get(CandidateRow, "c1").status == "ANALYZING"
        assert db_session.get(CandidateRow, "c2").status == "ERROR"

    async def test_list_by_job(self, session_factory, job, candidate_row):
        await CandidateStore(session_factory).update("c1", CandidateStatus.COMPLETED, make_result())

        candidates = await CandidateStore(session_factory).list_by_job(job.id)

        assert [c.id for c in candidates] == ["c1"]
        assert candidates[0].status == CandidateStatus.COMPLETED
        assert candidates[0].result.match_score == 8.0
        assert candidates[0].file_name == "cv.pdf"


class TestProfileStore:
    async def test_get_usage(self, session_factory, user):
        assert await ProfileStore(session_factory).get_usage("user-1") == (0, 25)
        assert await ProfileStore(session_factory).get_usage("fantasma") is None

    async def test_add_resume_usage_is_incremental(self, db_session, session_factory, user):
        store = ProfileStore(session_factory)

        assert await store.add_resume_usage("user-1", 3) == 3
        assert await store.add_resume_usage("user-1", 2) == 5

        db_session.expire_all()
        assert db_session.get(Profile, "user-1").resume_usage == 5

    async def test_add_resume_usage_missing_profile(self, session_factory, user):
        assert await ProfileStore(session_factory).add_resume_usage("fantasma", 3) is None
