import logging
from typing import Optional, Protocol, Tuple

from backend.config import UNLIMITED

logger = logging.getLogger(__name__)


class UsageStore(Protocol):
    async def get_usage(self, user_id: str) -> Optional[Tuple[int, int]]: ...

    async def add_resume_usage(self, user_id: str, amount: int) -> Optional[int]: ...


class QuotaReconciler:
    """
    Contabiliza, depois do lote, os currículos analisados com sucesso.

    É só um contador: não impede iniciar um lote acima do limite.
    """

    def __init__(self, profiles: UsageStore):
        self.profiles = profiles

    async def reconcile(self, user_id: str, completed: int) -> Optional[int]:
        """
        Soma `completed` ao resume_usage quando o plano não é ilimitado.

        Returns:
            uso atualizado (ou atual, se nada mudou); None se o perfil não existe
        """
        usage = await self.profiles.get_usage(user_id)
        if usage is None:
            logger.warning(f"⚠️ [quota] Perfil {user_id} não encontrado")
            return None

        current, limit = usage
        if limit >= UNLIMITED or completed <= 0:
            return current

        new_usage = await self.profiles.add_resume_usage(user_id, completed)
        logger.info(f"📊 [quota] Uso de {user_id}: {current} → {new_usage} / {limit}")
        return new_usage
