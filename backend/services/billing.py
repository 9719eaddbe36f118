from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from backend.config import UNLIMITED
from backend.database.models import Profile


@dataclass(frozen=True)
class PlanLimits:
    job_limit: int
    resume_limit: int
    monthly_price: float


PLANS: Dict[str, PlanLimits] = {
    "FREE": PlanLimits(job_limit=3, resume_limit=25, monthly_price=0.0),
    "MENSAL": PlanLimits(job_limit=5, resume_limit=150, monthly_price=329.90),
    "TRIMESTRAL": PlanLimits(job_limit=5, resume_limit=150, monthly_price=329.90),
    "ANUAL": PlanLimits(job_limit=UNLIMITED, resume_limit=UNLIMITED, monthly_price=289.90),
}

# Pagamentos acima de R$ 1.000,00 (em centavos) são do plano anual
ANNUAL_THRESHOLD_CENTS = 100000


def is_unlimited(limit: Optional[int]) -> bool:
    return (limit or 0) >= UNLIMITED


def apply_plan(profile: Profile, plan: str, subscription_status: Optional[str] = None) -> Profile:
    """Troca o plano e aplica os limites correspondentes (não zera o uso)."""
    limits = PLANS[plan]
    profile.plan = plan
    profile.job_limit = limits.job_limit
    profile.resume_limit = limits.resume_limit
    if subscription_status:
        profile.subscription_status = subscription_status
    profile.updated_at = datetime.now(timezone.utc)
    return profile


def plan_for_payment(amount_cents: int) -> str:
    return "ANUAL" if amount_cents > ANNUAL_THRESHOLD_CENTS else "MENSAL"


def finance_summary(plans: Iterable[str]) -> Dict[str, dict]:
    """Contagem de usuários e receita mensal estimada por plano."""
    summary = {
        name: {"count": 0, "price": limits.monthly_price, "revenue": 0.0}
        for name, limits in PLANS.items()
    }
    for plan in plans:
        if plan in summary:
            summary[plan]["count"] += 1
            summary[plan]["revenue"] = round(summary[plan]["revenue"] + summary[plan]["price"], 2)
    return summary
