"""
WISP Manager - Router: Cortes (clientes morosos)
Lista de clientes activos con meses pendientes, filtrable por región y
por número exacto de meses, y estado de cuenta por cliente.
"""
import asyncio
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from app.dependencies import get_ledger_repository
from app.schemas.arrears import (
    CortesResponse, MorosoItem, PartialFailureOut, ArrearsSummaryOut,
    ClientArrearsStatement
)
from app.schemas.common import ERROR_RESPONSES
from app.routers.common import http_error, period_out
from app.config import get_settings
from app.services.arrears_scanner import CancelToken, ScanFilters, scan_arrears
from app.services.billing_period import compute_arrears
from app.services.errors import (
    ClientNotFound, InvalidFilter, InvalidSignupDate, RepositoryUnavailable, ScanCancelled
)
from app.services.ledger_repository import LedgerRepository
from app.services.service_state import is_moroso

logger = logging.getLogger("cortes_router")

router = APIRouter(prefix="/cortes", tags=["Cortes"], responses=ERROR_RESPONSES)


async def _watch_disconnect(request: Request, cancel: CancelToken, interval: float = 0.5):
    """Cancela el barrido si el operador abandona el request."""
    while not cancel.cancelled:
        if await request.is_disconnected():
            cancel.cancel()
            return
        await asyncio.sleep(interval)


@router.get("", response_model=CortesResponse)
async def list_morosos(
    request: Request,
    region: Optional[str] = Query(None, description="Región exacta"),
    meses: Optional[str] = Query(None, description="Número exacto de meses pendientes (>= 1)"),
    fecha: Optional[date] = Query(None, description="Fecha de referencia (default: hoy)"),
    repository: LedgerRepository = Depends(get_ledger_repository),
):
    """
    Clientes activos con meses pendientes de pago.
    Antes del día 5 se revisa hasta el mes anterior.
    """
    try:
        filters = ScanFilters.from_query(region, meses)
    except InvalidFilter as e:
        raise http_error(422, e)

    cancel = CancelToken()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel))
    try:
        report = await scan_arrears(repository, fecha, filters, cancel=cancel)
    except RepositoryUnavailable as e:
        raise http_error(503, e)
    except ScanCancelled as e:
        logger.info(f"Lista de cortes abandonada: {e.message}")
        raise http_error(499, e)
    finally:
        cancel.cancel()
        watcher.cancel()

    items = []
    for result in report.results:
        c = result.client
        items.append(MorosoItem(
            client_id=c.id, name=c.name, phone=c.phone, email=c.email,
            region=c.region, plan_id=c.plan_id, signup_date=c.signup_date,
            status=c.status.value, pending_months=result.labels,
            pending_count=result.pending_count,
        ))

    summary = report.summary()
    return CortesResponse(
        reference_date=report.reference_date,
        reference_period=period_out(report.reference_period),
        region=filters.region,
        months=filters.months,
        items=items,
        failures=[PartialFailureOut(client_id=f.client_id, reason=f.reason, detail=f.detail, region=f.region)
                  for f in report.failures],
        summary=ArrearsSummaryOut(**summary.__dict__),
    )


@router.get("/clientes/{client_id}", response_model=ClientArrearsStatement)
async def client_statement(
    client_id: int,
    fecha: Optional[date] = Query(None),
    repository: LedgerRepository = Depends(get_ledger_repository),
):
    """Meses pendientes de un cliente y adeudo estimado según su plan."""
    try:
        client = await repository.get_customer(client_id)
        if client is None:
            raise ClientNotFound(client_id)
        payments = await repository.list_payments(client_id)
        arrears = compute_arrears(
            client, payments, fecha or date.today(), get_settings().ARREARS_GRACE_DAY
        )
        price = await repository.get_plan_price(client.plan_id)
    except ClientNotFound as e:
        raise http_error(404, e)
    except InvalidSignupDate as e:
        raise http_error(422, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    return ClientArrearsStatement(
        client_id=client.id,
        name=client.name,
        status=client.status.value,
        is_moroso=is_moroso(client, arrears),
        reference_period=period_out(arrears.reference_period),
        pending_periods=[period_out(p) for p in arrears.pending_periods],
        monthly_price=float(price) if price is not None else None,
        amount_due=float(arrears.amount_due(price)),
    )
