"""
WISP Manager - MikroTik Helper
Crea instancias de MikroTikService a partir de los routers registrados.
"""
import logging

from app.config import get_settings
from app.services.ledger_repository import LedgerRepository
from app.services.mikrotik_service import MikroTikService, MikroTikError

logger = logging.getLogger("mikrotik_helper")


async def get_mikrotik_for_router(repository: LedgerRepository, router_id: int) -> MikroTikService:
    """
    Obtiene un MikroTikService configurado con las credenciales del router.

    Raises:
        MikroTikError: si el router no existe o está inactivo
    """
    credentials = await repository.get_router_credentials(router_id)
    if credentials is None:
        raise MikroTikError(f"Router {router_id} no encontrado o inactivo")

    settings = get_settings()
    return MikroTikService(
        host=credentials.host,
        port=credentials.port,
        username=credentials.username,
        password=credentials.password,
        timeout=settings.MIKROTIK_API_TIMEOUT,
        morosos_list=settings.MOROSOS_ADDRESS_LIST,
    )
