"""
WISP Manager - Máquina de estados del servicio del cliente
Suspender y reactivar el servicio de un cliente en su router.

Suspender (falla cerrada):
  1. Busca el dispositivo y router del cliente → si no hay, DeviceNotBound
  2. Ordena el corte al controlador de red (con timeout)
  3. Solo si el router confirma, guarda estado = suspendido

Reactivar (falla abierta, normalmente al registrar un pago):
  1. Guarda estado = activo primero
  2. Intenta la reconexión en el router; si falla, se devuelve una
     advertencia y el cambio de estado NO se revierte

"moroso" nunca se guarda: es activo + meses pendientes.
Las operaciones de un mismo cliente se serializan con un lock por cliente.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Hashable, List, Optional

from app.config import get_settings
from app.models.client import ClientStatus
from app.services.billing_period import ArrearsResult, compute_arrears
from app.services.errors import (
    ClientNotFound, ControllerError, ControllerTimeout, ControllerUnavailable,
    DeviceNotBound, IllegalTransition, InvalidSignupDate
)
from app.services.ledger_repository import DeviceBinding, LedgerRepository
from app.services.network_controller import NetworkController

logger = logging.getLogger("service_state")

# Estados que el operador asigna a mano, sin tocar el router
MANUAL_STATUSES = {
    ClientStatus.ACTIVO,
    ClientStatus.CORTADO,
    ClientStatus.PAUSADO,
    ClientStatus.RECOGER_EQUIPO,
}


class KeyedLocks:
    """
    Un asyncio.Lock por llave (id de cliente), compartido por todo el proceso.
    El lock se descarta cuando nadie lo tiene ni lo espera.
    """

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._holders: Dict[Hashable, int] = {}

    @asynccontextmanager
    async def __call__(self, key: Hashable):
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if not self._holders[key]:
                del self._holders[key]
                del self._locks[key]

    def __len__(self):
        return len(self._locks)


@dataclass
class SuspensionOutcome:
    client_id: int
    previous_status: ClientStatus
    binding: DeviceBinding


@dataclass
class ReactivationOutcome:
    client_id: int
    previous_status: ClientStatus
    router_notified: bool = False
    warnings: List[str] = field(default_factory=list)


def is_moroso(client: Any, arrears: ArrearsResult) -> bool:
    """Moroso = activo con al menos un periodo sin pagar."""
    return client.status == ClientStatus.ACTIVO and arrears.has_arrears


class ServiceStateMachine:

    def __init__(
        self,
        repository: LedgerRepository,
        controller: NetworkController,
        locks: KeyedLocks,
        timeout: Optional[float] = None,
        grace_day: Optional[int] = None,
    ):
        settings = get_settings()
        self.repository = repository
        self.controller = controller
        self.locks = locks
        self.timeout = timeout or settings.CONTROLLER_TIMEOUT_SECONDS
        self.grace_day = grace_day or settings.ARREARS_GRACE_DAY

    async def _get_client(self, client_id: int):
        client = await self.repository.get_customer(client_id)
        if client is None:
            raise ClientNotFound(client_id)
        return client

    async def _call_controller(self, operation: str, binding: DeviceBinding) -> None:
        method = getattr(self.controller, operation)
        try:
            await asyncio.wait_for(
                method(binding.router_id, binding.device_ip, binding.control_mode),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise ControllerTimeout(operation, self.timeout, binding.device_ip)
        except ControllerError:
            raise
        except Exception as e:
            logger.exception(f"Error inesperado del controlador en '{operation}' {binding.device_ip}")
            raise ControllerUnavailable(f"Error del controlador de red: {e}")

    # ================================================================
    # SUSPENDER
    # ================================================================

    async def suspend(self, client_id: int) -> SuspensionOutcome:
        """
        Raises:
            ClientNotFound, IllegalTransition, DeviceNotBound,
            ControllerUnavailable, ControllerTimeout
        """
        async with self.locks(client_id):
            client = await self._get_client(client_id)
            previous = client.status
            if previous == ClientStatus.SUSPENDIDO:
                raise IllegalTransition(f"Cliente {client_id} ya está suspendido")

            binding = await self.repository.get_device_binding(client_id)
            if binding is None:
                logger.warning(f"Suspensión rechazada: cliente {client_id} sin dispositivo/router")
                raise DeviceNotBound(client_id)

            try:
                await self._call_controller("suspend", binding)
            except ControllerError as e:
                logger.error(f"Suspensión fallida cliente {client_id} ({binding.device_ip}): {e.message}")
                raise

            await self.repository.update_customer_status(client_id, ClientStatus.SUSPENDIDO)
            logger.info(
                f"Suspendido: cliente {client_id} ({previous.value} → suspendido) "
                f"IP {binding.device_ip} router {binding.router_id}"
            )
            return SuspensionOutcome(client_id=client_id, previous_status=previous, binding=binding)

    # ================================================================
    # REACTIVAR
    # ================================================================

    async def reactivate(self, client_id: int, reference_date: Optional[date] = None) -> ReactivationOutcome:
        """
        Raises:
            ClientNotFound, IllegalTransition
        """
        async with self.locks(client_id):
            client = await self._get_client(client_id)
            if not await self.can_reactivate(client, reference_date):
                raise IllegalTransition(
                    f"Cliente {client_id} en estado '{client.status.value}' sin adeudo: no hay nada que reactivar"
                )
            return await self.apply_reactivation(client)

    async def can_reactivate(self, client: Any, reference_date: Optional[date] = None) -> bool:
        """Suspendido, o activo con meses pendientes. No toma el lock."""
        if client.status == ClientStatus.SUSPENDIDO:
            return True
        if client.status != ClientStatus.ACTIVO:
            return False
        payments = await self.repository.list_payments(client.id)
        try:
            arrears = compute_arrears(client, payments, reference_date or date.today(), self.grace_day)
        except InvalidSignupDate as e:
            logger.warning(f"No se pudo evaluar adeudo para reactivar: {e.message}")
            return False
        return is_moroso(client, arrears)

    async def apply_reactivation(self, client: Any) -> ReactivationOutcome:
        """Efectos de la reactivación. El llamador debe tener el lock del cliente."""
        previous = client.status
        await self.repository.update_customer_status(client.id, ClientStatus.ACTIVO)
        outcome = ReactivationOutcome(client_id=client.id, previous_status=previous)

        # Un moroso activo nunca fue cortado en el router
        if previous != ClientStatus.SUSPENDIDO:
            logger.info(f"Cliente {client.id} moroso regularizado (sin cambios en router)")
            return outcome

        binding = await self.repository.get_device_binding(client.id)
        if binding is None:
            outcome.warnings.append("Cliente reactivado sin dispositivo/router asociado: revise el equipo")
            logger.warning(f"Reactivado cliente {client.id} sin dispositivo vinculado")
            return outcome

        try:
            await self._call_controller("reactivate", binding)
            outcome.router_notified = True
            logger.info(f"Reactivado: cliente {client.id} IP {binding.device_ip} router {binding.router_id}")
        except ControllerError as e:
            outcome.warnings.append(
                f"Estado actualizado pero hubo un error al reactivar el servicio en el router: {e.message}"
            )
            logger.warning(f"Reactivación en router fallida cliente {client.id}: {e.message}")
        return outcome

    # ================================================================
    # CAMBIO MANUAL DE ESTADO
    # ================================================================

    async def set_status(self, client_id: int, status: ClientStatus) -> ClientStatus:
        """
        Cambio manual (cortado, pausado, recoger equipo, activo) sin tocar el router.

        Raises:
            ClientNotFound, IllegalTransition
        """
        if status not in MANUAL_STATUSES:
            raise IllegalTransition("Para suspender use la operación de suspensión (corta en el router)")

        async with self.locks(client_id):
            client = await self._get_client(client_id)
            previous = client.status
            if previous == ClientStatus.SUSPENDIDO and status == ClientStatus.ACTIVO:
                raise IllegalTransition(
                    "Cliente suspendido: use reactivar para restablecer el servicio en el router"
                )
            if previous != status:
                await self.repository.update_customer_status(client_id, status)
                logger.info(f"Estado manual cliente {client_id}: {previous.value} → {status.value}")
            return previous
