"""
WISP Manager - Modelo de Planes de Servicio
Solo se usa el precio para estimar el adeudo por periodo pendiente.
"""
from sqlalchemy import Column, Integer, String, Boolean, Numeric
from sqlalchemy.orm import relationship
from app.models.base import AppBase


class ServicePlan(AppBase):
    __tablename__ = "service_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)             # Precio mensual en MXN
    is_active = Column(Boolean, default=True)

    clients = relationship("Client", back_populates="plan")

    def __repr__(self):
        return f"<ServicePlan {self.name} ${self.price}>"
