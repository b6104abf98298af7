"""
WISP Manager - Repositorio de clientes y pagos
Interfaz que consume el núcleo de cortes y su implementación SQLAlchemy.

Cada operación abre su propia sesión corta: el barrido de morosos consulta
pagos de varios clientes en paralelo y una AsyncSession no admite uso
concurrente.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.billing import Payment, PaymentMethod
from app.models.client import Client, ClientStatus
from app.models.network import Device, Router, ControlMode
from app.models.plan import ServicePlan
from app.services.errors import RepositoryUnavailable

logger = logging.getLogger("ledger_repository")

# Con asyncpg una BD caída llega como OSError (conexión rechazada) o timeout,
# no como SQLAlchemyError
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class DeviceBinding:
    """Equipo del cliente y el router que lo controla."""
    client_id: int
    device_ip: str
    router_id: int
    control_mode: ControlMode


@dataclass(frozen=True)
class RouterCredentials:
    router_id: int
    host: str
    port: int
    username: str
    password: str


class LedgerRepository(ABC):
    """Lo que el núcleo necesita del almacén de clientes y pagos."""

    @abstractmethod
    async def list_active_customers(self) -> List[Client]:
        ...

    @abstractmethod
    async def list_payments(self, client_id: int) -> List[Payment]:
        ...

    @abstractmethod
    async def get_customer(self, client_id: int) -> Optional[Client]:
        ...

    @abstractmethod
    async def update_customer_status(self, client_id: int, status: ClientStatus) -> None:
        ...

    @abstractmethod
    async def get_device_binding(self, client_id: int) -> Optional[DeviceBinding]:
        ...

    @abstractmethod
    async def add_payment(
        self, client_id: int, month: int, year: int, amount: Decimal,
        method: PaymentMethod = PaymentMethod.CASH, notes: Optional[str] = None
    ) -> Payment:
        ...

    async def get_plan_price(self, plan_id: Optional[int]) -> Optional[Decimal]:
        return None

    async def get_router_credentials(self, router_id: int) -> Optional[RouterCredentials]:
        return None


class SqlLedgerRepository(LedgerRepository):
    """Implementación sobre SQLAlchemy async."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str):
        """Sesión corta; cualquier falla de la BD se reporta como RepositoryUnavailable."""
        try:
            async with self._session_factory() as db:
                yield db
        except DATABASE_ERRORS as e:
            logger.error(f"Error de base de datos al {action}: {e!r}")
            raise RepositoryUnavailable(f"No se pudo {action}: {e}")

    async def list_active_customers(self) -> List[Client]:
        query = select(Client).where(Client.status == ClientStatus.ACTIVO).order_by(Client.id)
        async with self._session("obtener los clientes activos") as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def list_payments(self, client_id: int) -> List[Payment]:
        async with self._session(f"obtener los pagos del cliente {client_id}") as db:
            result = await db.execute(
                select(Payment).where(Payment.client_id == client_id).order_by(Payment.id)
            )
            return list(result.scalars().all())

    async def get_customer(self, client_id: int) -> Optional[Client]:
        async with self._session(f"leer el cliente {client_id}") as db:
            return await db.get(Client, client_id)

    async def update_customer_status(self, client_id: int, status: ClientStatus) -> None:
        async with self._session(f"guardar el estado '{status.value}' del cliente {client_id}") as db:
            client = await db.get(Client, client_id)
            if client is None:
                raise RepositoryUnavailable(f"Cliente {client_id} desapareció antes de guardar el estado")
            client.status = status
            await db.commit()

    async def get_device_binding(self, client_id: int) -> Optional[DeviceBinding]:
        async with self._session(f"leer el dispositivo del cliente {client_id}") as db:
            result = await db.execute(
                select(Device.ip, Router.id, Router.control_mode)
                .join(Router, Device.router_id == Router.id)
                .where(Device.client_id == client_id, Router.is_active == True)
            )
            row = result.first()

        if row is None or not row[0]:
            return None
        ip, router_id, control_mode = row
        return DeviceBinding(client_id=client_id, device_ip=ip, router_id=router_id, control_mode=control_mode)

    async def add_payment(
        self, client_id: int, month: int, year: int, amount: Decimal,
        method: PaymentMethod = PaymentMethod.CASH, notes: Optional[str] = None
    ) -> Payment:
        async with self._session(f"registrar el pago del cliente {client_id}") as db:
            payment = Payment(
                client_id=client_id, month=month, year=year,
                amount=amount, method=method, notes=notes,
            )
            db.add(payment)
            await db.commit()
            await db.refresh(payment)
            return payment

    async def get_plan_price(self, plan_id: Optional[int]) -> Optional[Decimal]:
        if plan_id is None:
            return None
        async with self._session(f"leer el plan {plan_id}") as db:
            plan = await db.get(ServicePlan, plan_id)
            return plan.price if plan else None

    async def get_router_credentials(self, router_id: int) -> Optional[RouterCredentials]:
        async with self._session(f"leer el router {router_id}") as db:
            router = await db.get(Router, router_id)
        if router is None or not router.is_active:
            return None
        return RouterCredentials(
            router_id=router.id, host=router.host, port=router.api_port or 8728,
            username=router.username or "admin", password=router.password or "",
        )
