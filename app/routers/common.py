"""
WISP Manager - Utilidades compartidas de routers
"""
from fastapi import HTTPException

from app.services.billing_period import BillingPeriod
from app.services.errors import CortesError
from app.schemas.arrears import BillingPeriodOut


class ReasonedHTTPException(HTTPException):
    """HTTPException con el `code` del error para que el operador sepa qué hacer."""

    def __init__(self, status_code: int, detail: str, reason: str):
        super().__init__(status_code, detail=detail)
        self.reason = reason


def http_error(status_code: int, error: CortesError) -> ReasonedHTTPException:
    return ReasonedHTTPException(status_code, error.message, error.code)


def period_out(period: BillingPeriod) -> BillingPeriodOut:
    return BillingPeriodOut(
        month=period.month, year=period.year,
        label=period.label, name=period.display_name,
    )
