"""
WISP Manager - Controlador de red
Contrato que usa la máquina de estados para cortar/reconectar un dispositivo.
La máquina de estados no conoce RouterOS: solo llama a este contrato.

Implementaciones:
  - SimulatedNetworkController: siempre responde OK (por defecto)
  - MikroTikNetworkController: usa librouteros vía MikroTikService
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Tuple

from app.config import Settings, get_settings
from app.models.network import ControlMode
from app.services.errors import ControllerUnavailable
from app.services.ledger_repository import LedgerRepository
from app.services.mikrotik_helper import get_mikrotik_for_router
from app.services.mikrotik_service import MikroTikError

logger = logging.getLogger("network_controller")


class NetworkController(ABC):

    @abstractmethod
    async def suspend(self, router_id: int, device_ip: str, control_mode: ControlMode) -> None:
        """Corta el acceso. Lanza ControllerError si falla."""

    @abstractmethod
    async def reactivate(self, router_id: int, device_ip: str, control_mode: ControlMode) -> None:
        """Restablece el acceso. Lanza ControllerError si falla."""


class SimulatedNetworkController(NetworkController):
    """Sin router real: registra las llamadas y responde éxito."""

    def __init__(self):
        self.calls: List[Tuple[str, int, str, str]] = []

    async def suspend(self, router_id, device_ip, control_mode):
        self.calls.append(("suspend", router_id, device_ip, ControlMode(control_mode).value))
        logger.info(f"[simulado] Suspender {device_ip} en router {router_id} ({ControlMode(control_mode).value})")

    async def reactivate(self, router_id, device_ip, control_mode):
        self.calls.append(("reactivate", router_id, device_ip, ControlMode(control_mode).value))
        logger.info(f"[simulado] Reactivar {device_ip} en router {router_id} ({ControlMode(control_mode).value})")


class MikroTikNetworkController(NetworkController):
    """Adaptador sobre MikroTikService. Sin reintentos."""

    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    async def suspend(self, router_id, device_ip, control_mode):
        try:
            mk = await get_mikrotik_for_router(self.repository, router_id)
            await mk.suspend_device(device_ip, ControlMode(control_mode))
        except MikroTikError as e:
            logger.error(f"Error MikroTik al suspender {device_ip} (router {router_id}): {e}")
            raise ControllerUnavailable(f"Router {router_id} no disponible: {e}")

    async def reactivate(self, router_id, device_ip, control_mode):
        try:
            mk = await get_mikrotik_for_router(self.repository, router_id)
            await mk.reactivate_device(device_ip, ControlMode(control_mode))
        except MikroTikError as e:
            logger.error(f"Error MikroTik al reactivar {device_ip} (router {router_id}): {e}")
            raise ControllerUnavailable(f"Router {router_id} no disponible: {e}")


def get_network_controller(repository: LedgerRepository, settings: Settings = None) -> NetworkController:
    settings = settings or get_settings()
    kind = settings.NETWORK_CONTROLLER.lower()
    if kind == "mikrotik":
        return MikroTikNetworkController(repository)
    if kind == "simulated":
        return SimulatedNetworkController()
    raise ValueError(f"NETWORK_CONTROLLER desconocido: {settings.NETWORK_CONTROLLER}")
