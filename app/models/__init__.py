"""
WISP Manager - Models
Importa todos los modelos para que SQLAlchemy los registre.
"""
# Base
from app.models.base import AppBase, TimestampMixin

# Clientes y planes
from app.models.client import Client, ClientStatus
from app.models.plan import ServicePlan

# Pagos
from app.models.billing import Payment, PaymentMethod

# Red
from app.models.network import Router, Device, ControlMode

__all__ = [
    "AppBase", "TimestampMixin",
    "Client", "ClientStatus",
    "ServicePlan",
    "Payment", "PaymentMethod",
    "Router", "Device", "ControlMode",
]
