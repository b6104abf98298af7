"""
WISP Manager - Modelo Client
Los suscriptores del servicio de internet prepago.

El estado "moroso" NO se guarda aquí: se calcula con los periodos
pendientes (ver app.services.billing_period). El estado persistido solo
lo cambia el operador o la máquina de estados de servicio.
"""
from sqlalchemy import Column, Integer, String, Enum, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import AppBase
import enum


class ClientStatus(str, enum.Enum):
    ACTIVO = "activo"
    SUSPENDIDO = "suspendido"
    CORTADO = "cortado"
    PAUSADO = "pausado"
    RECOGER_EQUIPO = "recoger_equipo"

    @classmethod
    def parse(cls, value: str) -> "ClientStatus":
        """Acepta el texto heredado ("recoger equipo") y lo normaliza."""
        normalized = (value or "").strip().lower().replace(" ", "_")
        return cls(normalized)


class Client(AppBase):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # --- Datos personales ---
    name = Column(String(300), nullable=False)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    region = Column(String(100), nullable=True, index=True)

    # --- Servicio ---
    plan_id = Column(Integer, ForeignKey("service_plans.id"), nullable=True)
    # Texto crudo: las importaciones heredadas traen fechas sin validar
    signup_date = Column(String(32), nullable=True)

    # --- Estado ---
    status = Column(Enum(ClientStatus), default=ClientStatus.ACTIVO, nullable=False, index=True)

    # --- Relationships ---
    plan = relationship("ServicePlan", back_populates="clients")
    payments = relationship("Payment", back_populates="client", cascade="all, delete-orphan")
    device = relationship("Device", back_populates="client", uselist=False)

    def __repr__(self):
        return f"<Client {self.name} ({self.status.value})>"
