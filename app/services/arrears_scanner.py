"""
WISP Manager - Barrido de morosos (lista de cortes)
Aplica el cálculo de adeudos a todos los clientes activos y arma:
  - la lista de cortes (clientes activos con meses pendientes, filtrable
    por región exacta y por número exacto de meses)
  - los totales del dashboard (morosos y porcentaje) sobre el MISMO barrido

Los pagos de cada cliente se consultan en paralelo con un límite de
concurrencia. Un cliente con datos inválidos o cuyos pagos no se pudieron
leer queda fuera de la lista y se reporta como falla parcial; el resto del
barrido continúa. Si no se puede obtener la lista de clientes, falla todo.
"""
import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from app.config import get_settings
from app.models.client import ClientStatus
from app.services.billing_period import (
    ArrearsResult, BillingPeriod, compute_arrears, current_billable_period
)
from app.services.errors import (
    InvalidFilter, InvalidSignupDate, RepositoryUnavailable, ScanCancelled
)
from app.services.ledger_repository import LedgerRepository

logger = logging.getLogger("arrears_scanner")

MAX_REGION_LENGTH = 100


# ================================================================
# FILTROS
# ================================================================

@dataclass(frozen=True)
class ScanFilters:
    region: Optional[str] = None
    months: Optional[int] = None

    @classmethod
    def from_query(
        cls, region: Optional[str] = None, months: Union[str, int, None] = None
    ) -> "ScanFilters":
        """
        Valida los filtros tal como llegan (query string, CLI o argumento).

        - region: texto exacto; vacío = sin filtro
        - months: entero >= 1; vacío o 0 = sin filtro

        Raises:
            InvalidFilter: si algún filtro está mal formado
        """
        return cls(region=_parse_region(region), months=_parse_months(months))

    def matches(self, result: ArrearsResult) -> bool:
        if self.region is not None and _region_of(result) != self.region:
            return False
        if self.months is not None and result.pending_count != self.months:
            return False
        return True


def _parse_region(region: Optional[str]) -> Optional[str]:
    if region is None or region == "":
        return None
    if not isinstance(region, str):
        raise InvalidFilter(f"Región inválida: {region!r}")
    if not region.strip():
        raise InvalidFilter("La región no puede ser solo espacios")
    if len(region) > MAX_REGION_LENGTH:
        raise InvalidFilter(f"La región excede {MAX_REGION_LENGTH} caracteres")
    return region


def _parse_months(months: Union[str, int, None]) -> Optional[int]:
    if months is None or months == "":
        return None
    if isinstance(months, bool):
        raise InvalidFilter(f"Número de meses inválido: {months!r}")
    if isinstance(months, str):
        try:
            months = int(months.strip())
        except ValueError:
            raise InvalidFilter(f"Número de meses inválido: {months!r}")
    if not isinstance(months, int):
        raise InvalidFilter(f"Número de meses inválido: {months!r}")
    if months < 0:
        raise InvalidFilter(f"El número de meses debe ser >= 1 (recibido {months})")
    return months or None


def _region_of(result: ArrearsResult) -> Optional[str]:
    return getattr(result.client, "region", None)


# ================================================================
# CANCELACIÓN
# ================================================================

class CancelToken:
    """Cancelación cooperativa: se revisa antes de evaluar cada cliente."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# ================================================================
# RESULTADO DEL BARRIDO
# ================================================================

@dataclass(frozen=True)
class PartialFailure:
    client_id: Any
    reason: str
    detail: str
    region: Optional[str] = None


@dataclass(frozen=True)
class ArrearsSummary:
    total_active: int
    total_morosos: int
    porcentaje_morosos: float


@dataclass
class ScanReport:
    reference_date: date
    reference_period: BillingPeriod
    filters: ScanFilters
    evaluated: List[ArrearsResult] = field(default_factory=list)
    failures: List[PartialFailure] = field(default_factory=list)

    def _population(self) -> List[ArrearsResult]:
        if self.filters.region is None:
            return self.evaluated
        return [r for r in self.evaluated if _region_of(r) == self.filters.region]

    @property
    def results(self) -> List[ArrearsResult]:
        """Lista de cortes: clientes con adeudo que pasan los filtros."""
        return [r for r in self.evaluated if r.has_arrears and self.filters.matches(r)]

    def summary(self) -> ArrearsSummary:
        """Totales del dashboard. Respeta la región pero no el filtro de meses."""
        population = self._population()
        total = len(population)
        morosos = sum(1 for r in population if r.has_arrears)
        percent = round(morosos * 100 / total, 2) if total else 0.0
        return ArrearsSummary(total_active=total, total_morosos=morosos, porcentaje_morosos=percent)

    def morosos_by_region(self) -> Dict[str, int]:
        counts = Counter(
            _region_of(r) or "Sin región" for r in self._population() if r.has_arrears
        )
        return dict(sorted(counts.items()))

    def morosos_for_period(self, period: BillingPeriod) -> int:
        """Clientes que no han pagado un periodo dado."""
        return sum(1 for r in self._population() if period in r.pending_periods)


# ================================================================
# BARRIDO
# ================================================================

async def scan_arrears(
    repository: LedgerRepository,
    reference_date: Optional[date] = None,
    filters: Optional[ScanFilters] = None,
    cancel: Optional[CancelToken] = None,
    concurrency: Optional[int] = None,
    grace_day: Optional[int] = None,
) -> ScanReport:
    """
    Calcula los meses pendientes de todos los clientes activos.

    Raises:
        RepositoryUnavailable: si no se pudo obtener la lista de clientes
        ScanCancelled: si se canceló el barrido antes de terminar
    """
    settings = get_settings()
    reference_date = reference_date or date.today()
    filters = filters or ScanFilters()
    concurrency = concurrency or settings.SCAN_CONCURRENCY
    grace_day = grace_day or settings.ARREARS_GRACE_DAY

    if cancel is not None and cancel.cancelled:
        raise ScanCancelled("Barrido cancelado antes de iniciar")

    customers = [
        c for c in await repository.list_active_customers()
        if c.status == ClientStatus.ACTIVO
    ]
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def evaluate(client) -> Union[ArrearsResult, PartialFailure, None]:
        async with semaphore:
            if cancel is not None and cancel.cancelled:
                return None
            try:
                payments = await repository.list_payments(client.id)
                return compute_arrears(client, payments, reference_date, grace_day)
            except (InvalidSignupDate, RepositoryUnavailable) as e:
                logger.warning(f"Cliente {client.id} excluido del barrido: {e.message}")
                return PartialFailure(
                    client_id=client.id, reason=e.code, detail=e.message,
                    region=getattr(client, "region", None),
                )

    outcomes = await asyncio.gather(*(evaluate(c) for c in customers))

    if cancel is not None and cancel.cancelled:
        done = sum(1 for o in outcomes if o is not None)
        logger.info(f"Barrido cancelado tras evaluar {done}/{len(customers)} clientes")
        raise ScanCancelled(f"Barrido cancelado ({done}/{len(customers)} clientes evaluados)")

    report = ScanReport(
        reference_date=reference_date,
        reference_period=current_billable_period(reference_date, grace_day),
        filters=filters,
    )
    for outcome in outcomes:
        if isinstance(outcome, PartialFailure):
            # Las fallas se reportan con el mismo alcance de región que la lista
            if filters.region is None or outcome.region == filters.region:
                report.failures.append(outcome)
        else:
            report.evaluated.append(outcome)

    logger.info(
        f"Barrido {report.reference_period}: {len(customers)} activos, "
        f"{len(report.results)} en lista de cortes, {len(report.failures)} con error"
    )
    return report


class ScanMemo:
    """
    Memoriza barridos dentro de UN request, por (fecha, filtros).
    No se comparte entre requests: un pago recién registrado debe verse
    en la siguiente consulta.
    """

    def __init__(self, repository: LedgerRepository, **scan_kwargs):
        self._repository = repository
        self._scan_kwargs = scan_kwargs
        self._reports: Dict[Tuple[date, ScanFilters], ScanReport] = {}

    async def scan(self, reference_date: date, filters: Optional[ScanFilters] = None) -> ScanReport:
        key = (reference_date, filters or ScanFilters())
        if key not in self._reports:
            self._reports[key] = await scan_arrears(
                self._repository, reference_date, key[1], **self._scan_kwargs
            )
        return self._reports[key]
