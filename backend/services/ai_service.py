import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from backend.schemas.candidate import FAILED_ANALYSIS, AnalysisResult
from backend.services.exceptions import MissingCredential
from backend.utils.helpers import clean_json_string

logger = logging.getLogger(__name__)

GENERIC_TITLES = {"teste", "test", "vaga", "geral", "admin"}

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "candidateName": {
            "type": "string",
            "description": "Nome do candidato ou 'Não identificado'.",
        },
        "matchScore": {
            "type": "number",
            "description": "Nota de 0.0 a 10.0. Sem experiência no cargo exato, a nota máxima é 6.5.",
        },
        "yearsExperience": {
            "type": "string",
            "description": "Tempo total de experiência no cargo solicitado. Se zero, 'Sem experiência'.",
        },
        "city": {"type": "string", "description": "Cidade de residência ou 'Não informado'."},
        "neighborhood": {"type": "string", "description": "Bairro ou 'Não informado'."},
        "phoneNumbers": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Telefones encontrados no currículo.",
        },
        "summary": {
            "type": "string",
            "description": "Análise técnica (aprox. 400 caracteres) que justifica a nota.",
        },
        "pros": {
            "type": "array",
            "items": {"type": "string"},
            "description": "3 pontos fortes que atendem à vaga.",
        },
        "cons": {
            "type": "array",
            "items": {"type": "string"},
            "description": "3 pontos de atenção.",
        },
        "workHistory": {
            "type": "array",
            "description": "3 experiências profissionais mais relevantes.",
            "items": {
                "type": "object",
                "properties": {
                    "company": {"type": "string", "description": "Empresa"},
                    "role": {"type": "string", "description": "Cargo"},
                    "duration": {"type": "string", "description": "Duração (ex.: '1 ano e 5 meses'), sem datas."},
                },
            },
        },
    },
    "required": [
        "candidateName", "matchScore", "summary", "city", "neighborhood",
        "phoneNumbers", "pros", "cons", "workHistory",
    ],
}


def build_prompt(job_title: str, criteria: str) -> str:
    """Prompt com a régua de pontuação; vagas genéricas viram análise geral."""
    title = (job_title or "").strip()
    if len(title) < 3 or title.lower() in GENERIC_TITLES:
        title = "Profissional (Análise Geral)"
        criteria = "Avalie a qualidade do currículo, estabilidade profissional, clareza e soft skills."

    return f"""
Você é um Recrutador Técnico Sênior, crítico e rigoroso.

DADOS DA VAGA:
- Título exato: "{title}"
- Requisitos: "{criteria}"

REGRAS DE PONTUAÇÃO (matchScore, 0.0 a 10.0):
1. Experiência exata é obrigatória para notas altas:
   - Se o candidato NUNCA ocupou um cargo com título igual ou sinônimo direto de "{title}", a nota MÁXIMA é 6.5.
   - Funções correlatas (tarefas parecidas, título diferente) NÃO contam como experiência exata.
2. Escala:
   - 9.0 a 10.0: atuou exatamente no cargo por mais de 2 anos e atende todos os requisitos.
   - 7.0 a 8.9: atuou no cargo, mas por pouco tempo ou falta algum requisito secundário.
   - 5.0 a 6.5: nunca atuou no cargo, mas tem experiência em área próxima.
   - 0.0 a 4.9: sem experiência relevante.
3. No 'summary', se não houver o cargo exato, comece com: "O candidato não possui experiência direta como {title}...".
4. Em 'cons', cite a falta de experiência no título da vaga como principal ponto de atenção quando for o caso.
5. 'yearsExperience' soma apenas o tempo no cargo solicitado.

Retorne APENAS o JSON.
"""


def is_rate_limit(error: BaseException) -> bool:
    """HTTP 429 (ou equivalente) do provedor de IA."""
    if isinstance(error, openai.RateLimitError):
        return True
    status = getattr(error, "status_code", None) or getattr(error, "status", None)
    return status == 429 or "429" in str(error)


@dataclass(frozen=True)
class ScoreOutcome:
    """
    Resultado da pontuação: sempre traz um AnalysisResult completo.

    model é o modelo que respondeu; None indica o resultado sentinela
    (todos os modelos falharam) e error traz o último erro.
    """
    result: AnalysisResult
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.model is not None


class EmptyResponse(Exception):
    pass


class ResumeScoringClient:
    def __init__(
        self,
        api_key: str,
        models: Sequence[str],
        *,
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        top_k: Optional[int] = None,
        timeout: float = 120.0,
        rate_limit_backoff: float = 1.5,
        client: Optional[AsyncOpenAI] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not api_key or not api_key.strip():
            raise MissingCredential("OPENAI_API_KEY não configurada")
        if not models:
            raise ValueError("Informe ao menos um modelo de IA")

        self.models = list(models)
        self.temperature = temperature
        self.top_k = top_k
        self.rate_limit_backoff = rate_limit_backoff
        self._sleep = sleep
        # Sem retries do SDK: a política de 429 é a troca de modelo
        self.client = client or AsyncOpenAI(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )
        logger.info(f"✅ Cliente de IA inicializado (modelos={' → '.join(self.models)})")

    @classmethod
    def from_settings(cls, settings) -> "ResumeScoringClient":
        return cls(
            settings.OPENAI_API_KEY,
            settings.ai_models,
            base_url=settings.OPENAI_BASE_URL,
            temperature=settings.AI_TEMPERATURE,
            top_k=settings.AI_TOP_K,
            timeout=settings.AI_TIMEOUT_SECONDS,
            rate_limit_backoff=settings.AI_RATE_LIMIT_BACKOFF_SECONDS,
        )

    async def _chat(self, model: str, document: str, prompt: str) -> str:
        resp = await self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": "Você analisa currículos e responde somente JSON."},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "file",
                            "file": {
                                "filename": "curriculo.pdf",
                                "file_data": f"data:application/pdf;base64,{document}",
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                },
            ],
            temperature=self.temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "analise_curriculo", "schema": ANALYSIS_SCHEMA},
            },
            extra_body={"top_k": self.top_k} if self.top_k else None,
        )
        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise EmptyResponse("Resposta vazia da IA")
        return content

    @staticmethod
    def parse(content: str) -> AnalysisResult:
        """JSON (possivelmente embrulhado em markdown) → AnalysisResult validado."""
        return AnalysisResult.model_validate(json.loads(clean_json_string(content)))

    async def evaluate(self, document: str, job_title: str, criteria: str) -> ScoreOutcome:
        """
        Tenta cada modelo da cadeia em ordem.

        - HTTP 429: espera rate_limit_backoff e passa ao próximo (sem espera no último)
        - qualquer outra falha: passa ao próximo imediatamente
        - todos falharam: resultado sentinela, nunca exceção
        """
        prompt = build_prompt(job_title, criteria)
        last_error: Optional[BaseException] = None

        for index, model in enumerate(self.models):
            is_last = index == len(self.models) - 1
            try:
                content = await self._chat(model, document, prompt)
                result = self.parse(content)
                logger.info(f"✅ Currículo analisado pelo modelo {model} (score={result.match_score:.1f})")
                return ScoreOutcome(result=result, model=model)

            except (json.JSONDecodeError, ValidationError, EmptyResponse) as e:
                last_error = e
                logger.warning(f"⚠️ Resposta inválida do modelo {model}: {e}")

            except Exception as e:
                last_error = e
                if is_rate_limit(e):
                    logger.warning(f"⚠️ Rate limit no modelo {model}")
                    if not is_last:
                        await self._sleep(self.rate_limit_backoff)
                    continue
                logger.warning(f"⚠️ Erro no modelo {model}: {e}")

        logger.error(f"❌ Todos os modelos falharam ({', '.join(self.models)}): {last_error}")
        return ScoreOutcome(result=FAILED_ANALYSIS, error=str(last_error) if last_error else None)

    async def score(self, document: str, job_title: str, criteria: str) -> AnalysisResult:
        """Sempre devolve um AnalysisResult (o sentinela em caso de falha total)."""
        return (await self.evaluate(document, job_title, criteria)).result
