"""
WISP Manager - Dependencies (FastAPI Depends)
Funciones que se inyectan en los endpoints para obtener el repositorio,
el controlador de red y la máquina de estados.
"""
from fastapi import Depends

from app.config import get_settings
from app.database import SessionLocal
from app.services.arrears_scanner import ScanMemo
from app.services.ledger_repository import LedgerRepository, SqlLedgerRepository
from app.services.network_controller import NetworkController, get_network_controller
from app.services.service_state import KeyedLocks, ServiceStateMachine

# Un lock por cliente para todo el proceso (suspender / reactivar / pagos)
client_locks = KeyedLocks()


def get_ledger_repository() -> LedgerRepository:
    return SqlLedgerRepository(SessionLocal)


def get_controller(
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> NetworkController:
    return get_network_controller(repository, get_settings())


def get_state_machine(
    repository: LedgerRepository = Depends(get_ledger_repository),
    controller: NetworkController = Depends(get_controller),
) -> ServiceStateMachine:
    return ServiceStateMachine(repository, controller, client_locks)


def get_scan_memo(
    repository: LedgerRepository = Depends(get_ledger_repository),
) -> ScanMemo:
    """Memo de barridos que vive solo durante el request."""
    return ScanMemo(repository)
