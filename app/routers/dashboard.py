"""
WISP Manager - Router: Dashboard de morosos
Endpoint único con los totales de morosos, el desglose por región y los
morosos de cada uno de los últimos meses. Todo sale de un solo barrido.
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date
from dateutil.relativedelta import relativedelta

from app.dependencies import get_scan_memo
from app.schemas.arrears import ArrearsSummaryOut, DashboardArrears, MonthTile
from app.routers.common import http_error, period_out
from app.services.arrears_scanner import ScanFilters, ScanMemo
from app.services.billing_period import BillingPeriod
from app.services.errors import InvalidFilter, RepositoryUnavailable

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/arrears", response_model=DashboardArrears)
async def get_arrears_dashboard(
    months: int = Query(6, ge=1, le=24, description="Meses a mostrar en las tarjetas"),
    region: Optional[str] = Query(None),
    fecha: Optional[date] = Query(None),
    memo: ScanMemo = Depends(get_scan_memo),
):
    """
    Retorna las métricas de morosos en una sola llamada.
    """
    today = fecha or date.today()
    try:
        filters = ScanFilters.from_query(region=region)
        report = await memo.scan(today, filters)
    except InvalidFilter as e:
        raise http_error(422, e)
    except RepositoryUnavailable as e:
        raise http_error(503, e)

    # ─── TOTALES ───
    summary = report.summary()

    # ─── TARJETAS POR MES (del más reciente al más antiguo) ───
    start = date(report.reference_period.year, report.reference_period.month, 1)
    tiles = []
    for i in range(months):
        month_start = start - relativedelta(months=i)
        period = BillingPeriod.from_date(month_start)
        tiles.append(MonthTile(period=period_out(period), morosos=report.morosos_for_period(period)))

    return DashboardArrears(
        reference_date=today,
        region=filters.region,
        summary=ArrearsSummaryOut(**summary.__dict__),
        morosos_por_region=report.morosos_by_region(),
        meses=tiles,
        failures=len(report.failures),
    )
