"""
Fixtures compartidos: repositorio en memoria y controladores de red de prueba.
"""
import asyncio
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

# La configuración se lee al importar app.database: fijar la BD antes
_DB_DIR = tempfile.mkdtemp(prefix="wisp-cortes-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("NETWORK_CONTROLLER", "simulated")

import pytest

from app.models.billing import PaymentMethod
from app.models.client import ClientStatus
from app.models.network import ControlMode
from app.services.errors import ControllerUnavailable, RepositoryUnavailable
from app.services.ledger_repository import DeviceBinding, LedgerRepository
from app.services.network_controller import NetworkController
from app.services.service_state import KeyedLocks, ServiceStateMachine


def make_client(client_id, signup_date="2024-01-15", status=ClientStatus.ACTIVO,
                region="Centro", plan_id=1, name=None):
    return SimpleNamespace(
        id=client_id, name=name or f"Cliente {client_id}", phone="5550000000",
        email=None, region=region, plan_id=plan_id,
        signup_date=signup_date, status=status,
    )


class FakeLedgerRepository(LedgerRepository):
    """Repositorio en memoria. Cuenta lecturas concurrentes de pagos."""

    def __init__(self, clients=(), payments=None, bindings=None, prices=None):
        self.clients = {c.id: c for c in clients}
        self.payments = {cid: list(p) for cid, p in (payments or {}).items()}
        self.bindings = dict(bindings or {})
        self.prices = dict(prices or {1: Decimal("350.00")})
        self.fail_payments_for = set()
        self.fail_listing = False
        self.payment_delay = 0.0
        self.on_list_payments = None
        self.in_flight = 0
        self.max_in_flight = 0
        self.status_writes = []
        self._next_payment_id = 1

    async def list_active_customers(self):
        if self.fail_listing:
            raise RepositoryUnavailable("Base de datos no disponible")
        return [c for c in self.clients.values() if c.status == ClientStatus.ACTIVO]

    async def list_payments(self, client_id):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_list_payments is not None:
                self.on_list_payments(client_id)
            if self.payment_delay:
                await asyncio.sleep(self.payment_delay)
            if client_id in self.fail_payments_for:
                raise RepositoryUnavailable(f"No se pudieron obtener los pagos del cliente {client_id}")
            return list(self.payments.get(client_id, []))
        finally:
            self.in_flight -= 1

    async def get_customer(self, client_id):
        return self.clients.get(client_id)

    async def update_customer_status(self, client_id, status):
        self.clients[client_id].status = status
        self.status_writes.append((client_id, status))

    async def get_device_binding(self, client_id):
        return self.bindings.get(client_id)

    async def add_payment(self, client_id, month, year, amount,
                          method=PaymentMethod.CASH, notes=None):
        payment = SimpleNamespace(
            id=self._next_payment_id, client_id=client_id, month=month, year=year,
            amount=amount, method=method, paid_at=datetime(2024, 3, 10, 12, 0), notes=notes,
        )
        self._next_payment_id += 1
        self.payments.setdefault(client_id, []).append(payment)
        return payment

    async def get_plan_price(self, plan_id):
        return self.prices.get(plan_id)


class RecordingController(NetworkController):
    """Registra llamadas; puede fallar o tardar a propósito."""

    def __init__(self, error=None, delay=0.0):
        self.calls = []
        self.error = error
        self.delay = delay

    async def _run(self, op, router_id, device_ip, control_mode):
        self.calls.append((op, router_id, device_ip, ControlMode(control_mode).value))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    async def suspend(self, router_id, device_ip, control_mode):
        await self._run("suspend", router_id, device_ip, control_mode)

    async def reactivate(self, router_id, device_ip, control_mode):
        await self._run("reactivate", router_id, device_ip, control_mode)


def binding_for(client_id, ip="10.10.0.5", router_id=1, mode=ControlMode.ADDRESS_LIST):
    return DeviceBinding(client_id=client_id, device_ip=ip, router_id=router_id, control_mode=mode)


def payment(month, year, amount="350.00"):
    return SimpleNamespace(month=month, year=year, amount=Decimal(amount))


@pytest.fixture
def repository():
    return FakeLedgerRepository()


@pytest.fixture
def controller():
    return RecordingController()


@pytest.fixture
def machine(repository, controller):
    return ServiceStateMachine(repository, controller, KeyedLocks(), timeout=0.2)


@pytest.fixture
def failing_controller():
    return RecordingController(error=ControllerUnavailable("Router 1 no disponible: conexión rechazada"))
