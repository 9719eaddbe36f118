from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional

PlanType = Literal["FREE", "MENSAL", "TRIMESTRAL", "ANUAL"]


class UserRegister(BaseModel):
    """
    Schema para registro do perfil.

    Usado após criação do usuário no Supabase Auth; cria o perfil no plano FREE.
    """
    email: EmailStr = Field(..., description="Email do usuário")
    name: Optional[str] = Field(None, description="Nome completo")
    phone: Optional[str] = Field(None, description="Telefone para contato")

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "joao@empresa.com",
                "name": "João Silva",
                "phone": "+55 11 99999-9999",
            }
        }
    }


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None


class ProfileOut(BaseModel):
    """Perfil com plano, limites e uso."""
    id: str
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "USER"
    status: str = "ACTIVE"
    plan: str = "FREE"
    job_limit: int = 3
    resume_limit: int = 25
    resume_usage: int = 0
    subscription_status: Optional[str] = None
    salesperson: Optional[str] = None

    model_config = {"from_attributes": True}


class PlanOverride(BaseModel):
    plan: PlanType


class StatusOverride(BaseModel):
    status: Literal["ACTIVE", "BLOCKED"]


class AnnouncementCreate(BaseModel):
    title: str
    image_path: str
    link_url: Optional[str] = None
    target_plans: List[PlanType] = Field(..., min_length=1)


class AnnouncementOut(BaseModel):
    id: str
    title: str
    image_url: str
    link_url: Optional[str] = None
    is_active: bool = True
    target_plans: List[str] = []
