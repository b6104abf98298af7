"""
WISP Manager - Modelo de Pagos
Un pago cubre un periodo (mes, año). Se espera uno por periodo y cliente,
pero la unicidad no se impone: cualquier pago del periodo lo marca pagado.
"""
import enum
from sqlalchemy import (
    Column, Integer, Text, Numeric, ForeignKey, DateTime, Enum, func
)
from sqlalchemy.orm import relationship
from app.models.base import AppBase


class PaymentMethod(str, enum.Enum):
    CASH = "efectivo"
    TRANSFER = "transferencia"
    CARD = "tarjeta"
    DEPOSIT = "deposito"
    OTHER = "otro"


class Payment(AppBase):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)

    # --- Periodo cubierto ---
    month = Column(Integer, nullable=False)        # 1-12
    year = Column(Integer, nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    method = Column(Enum(PaymentMethod), default=PaymentMethod.CASH, nullable=False)
    paid_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    client = relationship("Client", back_populates="payments")

    def __repr__(self):
        return f"<Payment cliente={self.client_id} {self.month:02d}/{self.year} ${self.amount}>"
