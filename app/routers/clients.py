"""
WISP Manager - Router: Estado de servicio del cliente
Suspender (corta en el router), reactivar y cambios manuales de estado.
"""
from fastapi import APIRouter, Depends

from app.dependencies import get_state_machine
from app.models.client import ClientStatus
from app.schemas.client import (
    StatusChangeRequest, StatusChangeResponse, SuspendResponse, ReactivateResponse
)
from app.schemas.common import ERROR_RESPONSES
from app.routers.common import ReasonedHTTPException, http_error
from app.services.errors import (
    ClientNotFound, ControllerTimeout, ControllerUnavailable, DeviceNotBound,
    IllegalTransition, RepositoryUnavailable
)
from app.services.service_state import ServiceStateMachine

router = APIRouter(prefix="/clients", tags=["Clientes"], responses=ERROR_RESPONSES)


# ================================================================
# SUSPENDER / REACTIVAR
# ================================================================

@router.post("/{client_id}/suspend", response_model=SuspendResponse)
async def suspend_client(
    client_id: int,
    machine: ServiceStateMachine = Depends(get_state_machine),
):
    """
    Corta el servicio del cliente en su router.
    Si el router no confirma, el cliente NO queda suspendido.
    """
    try:
        outcome = await machine.suspend(client_id)
    except ClientNotFound as e:
        raise http_error(404, e)
    except IllegalTransition as e:
        raise http_error(409, e)
    except DeviceNotBound as e:
        raise http_error(422, e)
    except ControllerTimeout as e:
        raise http_error(504, e)
    except ControllerUnavailable as e:
        raise http_error(502, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    return SuspendResponse(
        client_id=outcome.client_id,
        previous_status=outcome.previous_status.value,
        device_ip=outcome.binding.device_ip,
        router_id=outcome.binding.router_id,
        control_mode=outcome.binding.control_mode.value,
    )


@router.post("/{client_id}/reactivate", response_model=ReactivateResponse)
async def reactivate_client(
    client_id: int,
    machine: ServiceStateMachine = Depends(get_state_machine),
):
    """Reactiva un cliente suspendido (o regulariza un moroso). Errores del router van en `warnings`."""
    try:
        outcome = await machine.reactivate(client_id)
    except ClientNotFound as e:
        raise http_error(404, e)
    except IllegalTransition as e:
        raise http_error(409, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    return ReactivateResponse(
        client_id=outcome.client_id,
        previous_status=outcome.previous_status.value,
        router_notified=outcome.router_notified,
        warnings=outcome.warnings,
    )


# ================================================================
# CAMBIO MANUAL DE ESTADO
# ================================================================

@router.patch("/{client_id}/status", response_model=StatusChangeResponse)
async def change_status(
    client_id: int,
    data: StatusChangeRequest,
    machine: ServiceStateMachine = Depends(get_state_machine),
):
    """Cortado, pausado, recoger equipo o activo. No toca el router."""
    try:
        status = ClientStatus.parse(data.status)
    except ValueError:
        raise ReasonedHTTPException(422, f"Estado desconocido: {data.status!r}", "invalid_status")

    try:
        previous = await machine.set_status(client_id, status)
    except ClientNotFound as e:
        raise http_error(404, e)
    except IllegalTransition as e:
        raise http_error(409, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    return StatusChangeResponse(client_id=client_id, previous_status=previous.value, status=status.value)
