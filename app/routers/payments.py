"""
WISP Manager - Router: Pagos
Registro de pagos mensuales. Si el cliente estaba suspendido o moroso,
se reactiva en el mismo request.
"""
import logging
from decimal import Decimal

from fastapi import APIRouter, Depends

from app.dependencies import get_state_machine
from app.schemas.billing import PaymentCreate, PaymentResponse, PaymentRegistrationResponse
from app.schemas.client import ReactivateResponse
from app.routers.common import http_error
from app.services.errors import ClientNotFound, RepositoryUnavailable
from app.services.payment_service import register_payment
from app.services.service_state import ServiceStateMachine

logger = logging.getLogger("payments_router")

router = APIRouter(prefix="/payments", tags=["Pagos"])


@router.post("", status_code=201, response_model=PaymentRegistrationResponse)
async def create_payment(
    data: PaymentCreate,
    machine: ServiceStateMachine = Depends(get_state_machine),
):
    """
    Registrar un pago manual (efectivo, transferencia, etc.).
    Un fallo del router al reactivar no bloquea el pago: se reporta como advertencia.
    """
    try:
        registration = await register_payment(
            machine,
            client_id=data.client_id,
            month=data.month,
            year=data.year,
            amount=Decimal(str(data.amount)),
            method=data.method,
            notes=data.notes,
        )
    except ClientNotFound as e:
        raise http_error(404, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    message = "Pago registrado"
    reactivation = None
    outcome = registration.reactivation
    if outcome is not None:
        message += " y cliente reactivado"
        if outcome.warnings:
            message += f" ({'; '.join(outcome.warnings)})"
        reactivation = ReactivateResponse(
            client_id=outcome.client_id,
            previous_status=outcome.previous_status.value,
            router_notified=outcome.router_notified,
            warnings=outcome.warnings,
        )

    return PaymentRegistrationResponse(
        message=message,
        payment=PaymentResponse.model_validate(registration.payment),
        reactivation=reactivation,
    )
