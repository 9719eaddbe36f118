from pydantic import BaseModel, Field
from typing import List, Optional

from backend.schemas.candidate import Candidate, CandidateStatus


class JobCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    criteria: str = ""


class JobUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    criteria: Optional[str] = None


class JobSettings(BaseModel):
    auto_analyze: Optional[bool] = None
    is_paused: Optional[bool] = None


class JobView(BaseModel):
    """Vaga como o painel a enxerga: dados básicos + candidatos em ordem."""
    id: str
    title: str
    criteria: str = ""
    description: str = ""
    candidates: List[Candidate] = Field(default_factory=list)

    model_config = {"frozen": True}

    def pending(self) -> List[Candidate]:
        return [c for c in self.candidates if c.status == CandidateStatus.PENDING]

    def replace_candidate(self, candidate: Candidate) -> "JobView":
        """Troca o candidato de mesmo id, preservando os demais e a ordem."""
        return self.model_copy(update={
            "candidates": [candidate if c.id == candidate.id else c for c in self.candidates]
        })
