"""
Testes do cliente de IA: cadeia de fallback, política de 429 e parsing.
"""

import pytest

from backend.schemas.candidate import FAILED_ANALYSIS, UNKNOWN_NAME
from backend.services.ai_service import ResumeScoringClient, build_prompt, is_rate_limit
from backend.services.exceptions import MissingCredential
from tests.fakes import RateLimited, ServerError, fake_openai, openai_rate_limit, result_json


def make_client(behaviors, models=None, **kwargs):
    openai_client, completions = fake_openai(behaviors)
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    client = ResumeScoringClient(
        "sk-teste",
        models or list(behaviors),
        client=openai_client,
        sleep=fake_sleep,
        **kwargs,
    )
    return client, completions, sleeps


class TestFallbackChain:
    async def test_first_model_answers(self):
        client, completions, sleeps = make_client({"modelo-a": result_json(), "modelo-b": result_json()})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.ok
        assert outcome.model == "modelo-a"
        assert outcome.result.candidate_name == "Maria Souza"
        assert [c["model"] for c in completions.calls] == ["modelo-a"]
        assert sleeps == []

    async def test_rate_limit_waits_then_uses_next_model(self):
        client, completions, sleeps = make_client(
            {"modelo-a": RateLimited("429 Too Many Requests"), "modelo-b": result_json(matchScore=7.5)}
        )

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"
        assert outcome.result.match_score == 7.5
        assert sleeps == [1.5]
        assert [c["model"] for c in completions.calls] == ["modelo-a", "modelo-b"]

    async def test_sdk_rate_limit_error_waits_then_uses_next_model(self):
        client, _, sleeps = make_client({"modelo-a": openai_rate_limit(), "modelo-b": result_json()})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"
        assert sleeps == [1.5]

    async def test_other_errors_skip_without_waiting(self):
        client, _, sleeps = make_client({"modelo-a": ServerError("boom"), "modelo-b": result_json()})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"
        assert sleeps == []

    async def test_invalid_json_tries_next_model(self):
        client, _, _ = make_client({"modelo-a": "não é json", "modelo-b": result_json()})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"

    async def test_empty_response_tries_next_model(self):
        client, _, _ = make_client({"modelo-a": "   ", "modelo-b": result_json()})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"

    async def test_no_wait_after_last_model_rate_limited(self):
        client, _, sleeps = make_client({"modelo-a": RateLimited("429")})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert not outcome.ok
        assert outcome.result == FAILED_ANALYSIS
        assert sleeps == []

    async def test_all_models_fail_returns_sentinel(self):
        client, completions, sleeps = make_client(
            {"modelo-a": RateLimited("429"), "modelo-b": ServerError("fora do ar")}
        )

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")
        result = await client.score("JVBERi0=", "Analista Financeiro", "Excel")

        assert not outcome.ok
        assert "fora do ar" in outcome.error
        assert result.candidate_name == "Erro na Análise"
        assert result.match_score == 0
        assert result.cons == ["Falha de processamento ou arquivo corrompido"]
        assert sleeps == [1.5, 1.5]

    async def test_custom_backoff(self):
        client, _, sleeps = make_client(
            {"modelo-a": RateLimited("429"), "modelo-b": result_json()}, rate_limit_backoff=0.2
        )

        await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert sleeps == [0.2]


class TestParsing:
    async def test_markdown_wrapped_response(self):
        client, _, _ = make_client({"modelo-a": f"```json\n{result_json()}\n```"})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.ok
        assert outcome.result.city == "São Paulo"

    async def test_prose_before_fenced_json(self):
        reply = f"Aqui está a análise:\n```json\n{result_json(matchScore=6.5)}\n```"
        client, _, _ = make_client({"modelo-a": reply})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-a"
        assert outcome.result.match_score == 6.5
        assert outcome.result.candidate_name == "Maria Souza"

    async def test_nan_score_tries_next_model(self):
        client, _, _ = make_client(
            {"modelo-a": result_json(matchScore=float("nan")), "modelo-b": result_json(matchScore=4.0)}
        )

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.model == "modelo-b"
        assert outcome.result.match_score == 4.0

    async def test_infinite_score_on_last_model_is_sentinel(self):
        client, _, _ = make_client({"modelo-a": result_json(matchScore=float("inf"))})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert not outcome.ok
        assert outcome.result == FAILED_ANALYSIS

    async def test_missing_name_gets_placeholder(self):
        client, _, _ = make_client({"modelo-a": result_json(candidateName="")})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.result.candidate_name == UNKNOWN_NAME

    async def test_score_is_clamped(self):
        client, _, _ = make_client({"modelo-a": result_json(matchScore=14)})

        outcome = await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert outcome.result.match_score == 10.0


class TestRequest:
    async def test_document_sent_inline_as_pdf(self):
        client, completions, _ = make_client({"modelo-a": result_json()}, temperature=0.3)

        await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        call = completions.calls[0]
        file_part = call["messages"][1]["content"][0]
        assert file_part["file"]["file_data"] == "data:application/pdf;base64,JVBERi0="
        assert call["temperature"] == 0.3
        assert call["response_format"]["type"] == "json_schema"
        assert call["extra_body"] is None

    async def test_top_k_sent_when_configured(self):
        client, completions, _ = make_client({"modelo-a": result_json()}, top_k=40)

        await client.evaluate("JVBERi0=", "Analista Financeiro", "Excel")

        assert completions.calls[0]["extra_body"] == {"top_k": 40}


class TestConstruction:
    def test_missing_key_raises(self):
        with pytest.raises(MissingCredential):
            ResumeScoringClient("", ["modelo-a"])

    def test_empty_model_list_raises(self):
        with pytest.raises(ValueError):
            ResumeScoringClient("sk-teste", [])


class TestPrompt:
    def test_uses_job_title_and_cap(self):
        prompt = build_prompt("Analista Financeiro", "Excel avançado")
        assert '"Analista Financeiro"' in prompt
        assert "6.5" in prompt
        assert "Excel avançado" in prompt

    def test_generic_title_becomes_general_analysis(self):
        prompt = build_prompt("teste", "qualquer coisa")
        assert "Profissional (Análise Geral)" in prompt
        assert "qualquer coisa" not in prompt

    def test_short_title_becomes_general_analysis(self):
        assert "Profissional (Análise Geral)" in build_prompt("TI", "")


def test_is_rate_limit():
    assert is_rate_limit(openai_rate_limit())
    assert is_rate_limit(RateLimited("limite"))
    assert is_rate_limit(Exception("Error code: 429 - quota"))
    assert not is_rate_limit(ServerError("boom"))
