from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

NOT_INFORMED = "Não informado"
UNKNOWN_NAME = "Candidato (Nome não identificado)"


class CandidateStatus(str, Enum):
    UPLOADING = "UPLOADING"
    PENDING = "PENDING"
    ANALYZING = "ANALYZING"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"


class WorkExperience(BaseModel):
    company: str = ""
    role: str = ""
    duration: str = ""

    model_config = {"frozen": True}


class AnalysisResult(BaseModel):
    """
    Resultado da IA para um currículo. Imutável: é produzido inteiro pelo
    cliente de IA ou não é produzido.

    Serializado com as chaves camelCase (candidateName, matchScore, ...)
    gravadas na coluna analysis_result.
    """
    candidate_name: str = Field(..., alias="candidateName")
    match_score: float = Field(..., alias="matchScore", allow_inf_nan=False)
    summary: str
    city: str
    neighborhood: str
    phone_numbers: List[str] = Field(..., alias="phoneNumbers")
    pros: List[str]
    cons: List[str]
    years_experience: Optional[str] = Field(default=None, alias="yearsExperience")
    work_history: List[WorkExperience] = Field(..., alias="workHistory")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("candidate_name", mode="before")
    @classmethod
    def default_name(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return UNKNOWN_NAME
        return v

    @field_validator("city", "neighborhood", mode="before")
    @classmethod
    def default_location(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            return NOT_INFORMED
        return v

    @field_validator("match_score")
    @classmethod
    def clamp_score(cls, v: float) -> float:
        return max(0.0, min(10.0, float(v)))

    def to_record(self) -> dict:
        """Formato JSON persistido na coluna analysis_result."""
        return self.model_dump(by_alias=True)


# Resultado sentinela devolvido quando todos os modelos falham
FAILED_ANALYSIS = AnalysisResult(
    candidateName="Erro na Análise",
    matchScore=0,
    yearsExperience="-",
    city="-",
    neighborhood="-",
    phoneNumbers=[],
    summary="O arquivo não pôde ser processado. Verifique se é um PDF válido com texto selecionável.",
    pros=[],
    cons=["Falha de processamento ou arquivo corrompido"],
    workHistory=[],
)


class Candidate(BaseModel):
    """Visão de um candidato na tela (projeção da linha candidates)."""
    id: str
    job_id: Optional[str] = None
    file_name: str = "currículo.pdf"
    file_path: Optional[str] = None
    status: CandidateStatus = CandidateStatus.PENDING
    result: Optional[AnalysisResult] = None
    is_selected: bool = False

    model_config = {"frozen": True}

    @classmethod
    def from_row(cls, row: Any) -> "Candidate":
        """Converte uma linha ORM (ou dict) da tabela candidates."""
        get = row.get if isinstance(row, dict) else lambda k, d=None: getattr(row, k, d)
        raw_result = get("analysis_result")
        status = CandidateStatus(get("status") or CandidateStatus.PENDING.value)
        result = None
        if raw_result and status == CandidateStatus.COMPLETED:
            result = AnalysisResult.model_validate(raw_result)
        return cls(
            id=get("id"),
            job_id=get("job_id"),
            file_name=get("filename") or "currículo.pdf",
            file_path=get("file_path"),
            status=status,
            result=result,
            is_selected=bool(get("is_selected", False)),
        )

    def with_status(self, status: CandidateStatus, result: Optional[AnalysisResult] = None) -> "Candidate":
        """Nova cópia com status (e resultado só quando COMPLETED)."""
        return self.model_copy(update={
            "status": status,
            "result": result if status == CandidateStatus.COMPLETED else None,
        })


class CandidateOut(BaseModel):
    id: str
    job_id: Optional[str] = None
    file_name: str
    status: CandidateStatus
    match_score: Optional[float] = None
    is_selected: bool = False
    result: Optional[dict] = None

    @classmethod
    def from_candidate(cls, c: Candidate) -> "CandidateOut":
        return cls(
            id=c.id,
            job_id=c.job_id,
            file_name=c.file_name,
            status=c.status,
            match_score=c.result.match_score if c.result else None,
            is_selected=c.is_selected,
            result=c.result.to_record() if c.result else None,
        )
