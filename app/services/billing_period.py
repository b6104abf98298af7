"""
WISP Manager - Periodos de facturación y cálculo de adeudos
Determina qué meses (mes, año) no tienen pago registrado desde la fecha de
alta del cliente hasta el periodo vigente a una fecha de referencia.

Regla de corte:
  - Si el día de la fecha de referencia es menor al día de gracia (5),
    el periodo vigente es el mes ANTERIOR (diciembre del año anterior en enero).
  - Desde el día 5 el periodo vigente es el mes calendario de la fecha.

Un periodo está pagado si existe al menos un pago con el mismo mes y año;
el monto no importa y los pagos duplicados cuentan como uno.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator, List, Optional, Set, Tuple

from dateutil.parser import isoparse

from app.services.errors import InvalidSignupDate

DEFAULT_GRACE_DAY = 5

MONTHS_ES = {
    1: "Enero", 2: "Febrero", 3: "Marzo", 4: "Abril",
    5: "Mayo", 6: "Junio", 7: "Julio", 8: "Agosto",
    9: "Septiembre", 10: "Octubre", 11: "Noviembre", 12: "Diciembre"
}


@dataclass(frozen=True, order=True)
class BillingPeriod:
    """Un mes de servicio. Se ordena por (año, mes)."""
    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"Mes fuera de rango: {self.month}")

    @classmethod
    def of(cls, month: int, year: int) -> "BillingPeriod":
        return cls(year=year, month=month)

    @classmethod
    def from_date(cls, value: date) -> "BillingPeriod":
        return cls(year=value.year, month=value.month)

    def next(self) -> "BillingPeriod":
        if self.month == 12:
            return BillingPeriod(year=self.year + 1, month=1)
        return BillingPeriod(year=self.year, month=self.month + 1)

    def previous(self) -> "BillingPeriod":
        if self.month == 1:
            return BillingPeriod(year=self.year - 1, month=12)
        return BillingPeriod(year=self.year, month=self.month - 1)

    @property
    def label(self) -> str:
        """Formato "MM/AAAA" usado en la lista de cortes."""
        return f"{self.month:02d}/{self.year}"

    @property
    def display_name(self) -> str:
        return f"{MONTHS_ES[self.month]} {self.year}"

    def __str__(self):
        return self.label


def current_billable_period(reference_date: date, grace_day: int = DEFAULT_GRACE_DAY) -> BillingPeriod:
    """Periodo que se considera vencido a la fecha de referencia."""
    period = BillingPeriod.from_date(reference_date)
    if reference_date.day < grace_day:
        return period.previous()
    return period


def iter_periods(start: BillingPeriod, end: BillingPeriod) -> Iterator[BillingPeriod]:
    """Recorre de `start` a `end` inclusive. Vacío si start > end."""
    current = start
    while current <= end:
        yield current
        current = current.next()


def parse_signup_date(value: Any, client_id: Any = None) -> date:
    """
    Interpreta la fecha de alta del cliente.

    Acepta date, datetime o texto ISO-8601 ("2024-03-15", "2024-03-15T10:00:00Z").

    Raises:
        InvalidSignupDate: si está vacía o no se puede interpretar
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            pass
    raise InvalidSignupDate(client_id, value)


def _payment_key(payment: Any) -> Optional[Tuple[int, int]]:
    """(año, mes) de un pago. Acepta modelos, dicts o tuplas (mes, año)."""
    if isinstance(payment, (tuple, list)):
        month, year = payment[0], payment[1]
    elif isinstance(payment, dict):
        month, year = payment.get("month"), payment.get("year")
    else:
        month, year = getattr(payment, "month", None), getattr(payment, "year", None)

    # Los registros heredados guardan mes/año como texto
    try:
        return int(year), int(month)
    except (TypeError, ValueError):
        return None


def paid_periods(payments: Iterable[Any]) -> Set[Tuple[int, int]]:
    keys = set()
    for payment in payments:
        key = _payment_key(payment)
        if key is not None:
            keys.add(key)
    return keys


@dataclass(frozen=True)
class ArrearsResult:
    """Periodos sin pago de un cliente. Se calcula en cada consulta, no se guarda."""
    client_id: Any
    pending_periods: Tuple[BillingPeriod, ...] = ()
    reference_period: Optional[BillingPeriod] = None
    client: Any = field(default=None, compare=False, repr=False)

    @property
    def pending_count(self) -> int:
        return len(self.pending_periods)

    @property
    def has_arrears(self) -> bool:
        return bool(self.pending_periods)

    @property
    def labels(self) -> List[str]:
        return [p.label for p in self.pending_periods]

    def amount_due(self, monthly_price: Any) -> Decimal:
        """Adeudo estimado: precio del plan por periodo pendiente."""
        if monthly_price is None:
            return Decimal("0")
        return Decimal(str(monthly_price)) * self.pending_count


def compute_arrears(
    client: Any,
    payments: Iterable[Any],
    reference_date: date,
    grace_day: int = DEFAULT_GRACE_DAY,
) -> ArrearsResult:
    """
    Calcula los periodos pendientes de un cliente.

    Función pura: no consulta la base de datos ni modifica sus argumentos.

    Args:
        client: objeto con `id` y `signup_date`
        payments: pagos del cliente (solo se usan mes y año)
        reference_date: fecha a la que se evalúa el adeudo
        grace_day: día del mes desde el que vence el mes en curso

    Raises:
        InvalidSignupDate: si la fecha de alta no es válida
    """
    client_id = getattr(client, "id", None)
    signup = parse_signup_date(getattr(client, "signup_date", None), client_id)

    first = BillingPeriod.from_date(signup)
    last = current_billable_period(reference_date, grace_day)
    paid = paid_periods(payments)

    # Fecha de alta futura (dato corrupto) -> iter_periods no produce nada
    pending = tuple(
        period for period in iter_periods(first, last)
        if (period.year, period.month) not in paid
    )
    return ArrearsResult(client_id=client_id, pending_periods=pending, reference_period=last, client=client)
