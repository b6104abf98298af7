"""
WISP Manager - Routers MikroTik y dispositivos de clientes
Router → controla el acceso de los dispositivos (IP) de sus clientes.
El registro de dispositivos es opcional: un cliente puede no tener equipo vinculado.
"""
import enum
from sqlalchemy import Column, Integer, String, Boolean, Text, Enum, ForeignKey
from sqlalchemy.orm import relationship
from app.models.base import AppBase


class ControlMode(str, enum.Enum):
    QUEUE = "queue"                  # Simple Queue
    ADDRESS_LIST = "address-list"    # Address List "morosos"
    PPPOE = "pppoe"                  # PPP Secret
    FIREWALL = "firewall"            # Regla de filtro drop
    HOTSPOT = "hotspot"              # Usuario hotspot


class Router(AppBase):
    __tablename__ = "routers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)           # "Torre Pinos", "Nodo Sur"
    host = Column(String(255), nullable=False)            # IP o hostname
    api_port = Column(Integer, default=8728)
    username = Column(String(100), nullable=False, default="admin")
    password = Column(Text, nullable=False, default="")
    control_mode = Column(Enum(ControlMode), default=ControlMode.QUEUE, nullable=False)
    is_active = Column(Boolean, default=True)

    devices = relationship("Device", back_populates="router")

    def __repr__(self):
        return f"<Router {self.name} @ {self.host} ({self.control_mode.value})>"


class Device(AppBase):
    """Equipo del cliente (antena/ONU) con su IP en el router."""
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, unique=True)
    router_id = Column(Integer, ForeignKey("routers.id"), nullable=False, index=True)
    ip = Column(String(45), nullable=False)
    model = Column(String(100), nullable=True)            # ej: "LiteBeam M5"

    client = relationship("Client", back_populates="device")
    router = relationship("Router", back_populates="devices")

    def __repr__(self):
        return f"<Device {self.ip} cliente={self.client_id}>"
