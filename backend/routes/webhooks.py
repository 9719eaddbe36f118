import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from backend.database.connection import get_db
from backend.database.models import Profile
from backend.services.billing import apply_plan, plan_for_payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

APPROVED_STATUSES = ("approved", "paid")


def _field(payload: dict, key: str):
    """Campo na raiz do payload ou dentro de `data`."""
    data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
    return payload.get(key) or data.get(key)


# ======================================================
# 💳 POST /webhooks/infinitepay - Pagamento aprovado
# ======================================================
@router.post("/infinitepay")
async def infinitepay_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Faz o upgrade do pagante. Valor em centavos acima de R$ 1.000,00 é o
    plano anual (ilimitado); abaixo disso, mensal.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Payload inválido")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Payload inválido")

    logger.info(f"📨 Webhook InfinitePay recebido: status={_field(payload, 'status')}")

    if _field(payload, "status") not in APPROVED_STATUSES:
        return {"message": "Ignorado: Pagamento não aprovado"}

    metadata = _field(payload, "metadata") or {}
    customer = _field(payload, "customer") or {}
    email = metadata.get("customer_email") or customer.get("email")
    if not email:
        logger.error("❌ Email não identificado no pagamento")
        raise HTTPException(status_code=400, detail="Email missing")

    try:
        amount = int(_field(payload, "amount") or 0)
    except (TypeError, ValueError):
        amount = 0
    plan = plan_for_payment(amount)

    profile = db.query(Profile).filter(Profile.email == email).first()
    if not profile:
        logger.error(f"❌ Usuário não encontrado no banco: {email}")
        raise HTTPException(status_code=404, detail="User not found")

    try:
        apply_plan(profile, plan, subscription_status="active")
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Erro ao aplicar plano {plan} para {email}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"💳 Upgrade de {email} para o plano {plan}")
    return {"success": True, "plan": plan}
