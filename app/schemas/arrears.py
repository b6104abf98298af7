"""
WISP Manager - Schemas de cortes / morosos
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import date


class BillingPeriodOut(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    label: str                     # "03/2024"
    name: str                      # "Marzo 2024"


class MorosoItem(BaseModel):
    client_id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    region: Optional[str] = None
    plan_id: Optional[int] = None
    signup_date: Optional[str] = None
    status: str
    pending_months: List[str] = []
    pending_count: int


class PartialFailureOut(BaseModel):
    client_id: int
    reason: str
    detail: str
    region: Optional[str] = None


class ArrearsSummaryOut(BaseModel):
    total_active: int
    total_morosos: int
    porcentaje_morosos: float


class CortesResponse(BaseModel):
    reference_date: date
    reference_period: BillingPeriodOut
    region: Optional[str] = None
    months: Optional[int] = None
    items: List[MorosoItem] = []
    failures: List[PartialFailureOut] = []
    summary: ArrearsSummaryOut


class ClientArrearsStatement(BaseModel):
    client_id: int
    name: str
    status: str
    is_moroso: bool
    reference_period: BillingPeriodOut
    pending_periods: List[BillingPeriodOut] = []
    monthly_price: Optional[float] = None
    amount_due: float = 0.0


class MonthTile(BaseModel):
    period: BillingPeriodOut
    morosos: int


class DashboardArrears(BaseModel):
    reference_date: date
    region: Optional[str] = None
    summary: ArrearsSummaryOut
    morosos_por_region: Dict[str, int] = {}
    meses: List[MonthTile] = []
    failures: int = 0
