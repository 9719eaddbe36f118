from backend.schemas.candidate import FAILED_ANALYSIS, CandidateStatus
from backend.services.ai_service import ScoreOutcome
from backend.services.pipeline import ResultCommitter, process_candidate
from tests.fakes import (
    FakeCandidateStore,
    FakeScorer,
    FakeStorage,
    make_candidate,
    make_result,
    make_workspace,
)


async def setup(*candidates, fail_completed=()):
    store = FakeCandidateStore(candidates, fail_completed=fail_completed)
    workspace = await make_workspace(store)
    return store, workspace, ResultCommitter(store, workspace)


class TestResultCommitter:
    async def test_completed_is_persisted_and_projected(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand)

        ok = await committer.commit("job-1", cand, make_result(score=9))

        assert ok is True
        assert store.writes == [("c1", CandidateStatus.COMPLETED)]
        projected = workspace.get_job("job-1").candidates[0]
        assert projected.status == CandidateStatus.COMPLETED
        assert projected.result.match_score == 9

    async def test_none_result_marks_error(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand)

        ok = await committer.commit("job-1", cand, None)

        assert ok is False
        assert store.rows["c1"].status == CandidateStatus.ERROR
        assert workspace.get_job("job-1").candidates[0].status == CandidateStatus.ERROR

    async def test_failed_save_falls_back_to_error(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand, fail_completed={"c1"})

        ok = await committer.commit("job-1", cand, make_result())

        assert ok is False
        assert store.writes == [("c1", CandidateStatus.COMPLETED), ("c1", CandidateStatus.ERROR)]
        projected = workspace.get_job("job-1").candidates[0]
        assert projected.status == CandidateStatus.ERROR
        assert projected.result is None

    async def test_only_the_committed_candidate_changes(self):
        c1, c2 = make_candidate("c1"), make_candidate("c2")
        _, workspace, committer = await setup(c1, c2)

        await committer.commit("job-1", c2, make_result())

        statuses = {c.id: c.status for c in workspace.get_job("job-1").candidates}
        assert statuses == {"c1": CandidateStatus.PENDING, "c2": CandidateStatus.COMPLETED}


class TestProcessCandidate:
    async def test_success(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand)
        scorer = FakeScorer()

        ok = await process_candidate(
            cand, workspace.get_job("job-1"), storage=FakeStorage(), scorer=scorer, committer=committer
        )

        assert ok is True
        assert scorer.calls[0][1:] == ("Analista Financeiro", "Excel avançado")
        assert store.rows["c1"].status == CandidateStatus.COMPLETED

    async def test_download_failure_skips_ai(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand)
        scorer = FakeScorer()

        ok = await process_candidate(
            cand,
            workspace.get_job("job-1"),
            storage=FakeStorage(failing={"path/c1.pdf"}),
            scorer=scorer,
            committer=committer,
        )

        assert ok is False
        assert scorer.calls == []
        assert store.rows["c1"].status == CandidateStatus.ERROR

    async def test_missing_path_is_error(self):
        cand = make_candidate("c1").model_copy(update={"file_path": None})
        store, workspace, committer = await setup(cand)

        ok = await process_candidate(
            cand, workspace.get_job("job-1"), storage=FakeStorage(), scorer=FakeScorer(), committer=committer
        )

        assert ok is False
        assert store.rows["c1"].status == CandidateStatus.ERROR

    async def test_sentinel_result_is_stored_as_completed(self):
        cand = make_candidate("c1")
        store, workspace, committer = await setup(cand)
        scorer = FakeScorer(ScoreOutcome(result=FAILED_ANALYSIS, error="todos falharam"))

        ok = await process_candidate(
            cand, workspace.get_job("job-1"), storage=FakeStorage(), scorer=scorer, committer=committer
        )

        assert ok is True
        assert store.rows["c1"].status == CandidateStatus.COMPLETED
        assert store.rows["c1"].result == FAILED_ANALYSIS
        assert workspace.get_job("job-1").candidates[0].result.candidate_name == "Erro na Análise"
