"""
WISP Manager - Registro de pagos
Registra el pago de un periodo y, si el cliente estaba suspendido o moroso,
lo reactiva. El pago nunca se bloquea por un problema con el router.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from app.models.billing import PaymentMethod
from app.services.errors import ClientNotFound
from app.services.service_state import ReactivationOutcome, ServiceStateMachine

logger = logging.getLogger("payment_service")


@dataclass
class PaymentRegistration:
    payment: Any
    reactivation: Optional[ReactivationOutcome] = None


async def register_payment(
    machine: ServiceStateMachine,
    client_id: int,
    month: int,
    year: int,
    amount: Decimal,
    method: PaymentMethod = PaymentMethod.CASH,
    notes: Optional[str] = None,
    reference_date: Optional[date] = None,
) -> PaymentRegistration:
    """
    Raises:
        ClientNotFound: si el cliente no existe
        RepositoryUnavailable: si no se pudo guardar el pago
    """
    repository = machine.repository
    async with machine.locks(client_id):
        client = await repository.get_customer(client_id)
        if client is None:
            raise ClientNotFound(client_id)

        # Se evalúa antes del pago: después ya no aparecería como moroso
        eligible = await machine.can_reactivate(client, reference_date)

        payment = await repository.add_payment(
            client_id=client_id, month=month, year=year,
            amount=amount, method=method, notes=notes,
        )
        logger.info(f"Pago registrado: cliente {client_id}, {month:02d}/{year}, ${amount}")

        reactivation = None
        if eligible:
            reactivation = await machine.apply_reactivation(client)

    return PaymentRegistration(payment=payment, reactivation=reactivation)
