"""
WISP Manager - Modelo base
Todas las tablas del núcleo de cortes heredan de AppBase (timestamps).
"""
from sqlalchemy import Column, DateTime, func
from app.database import Base


class TimestampMixin:
    """Agrega created_at y updated_at a cualquier modelo."""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class AppBase(Base, TimestampMixin):
    """Clase base abstracta para las tablas de la aplicación."""
    __abstract__ = True
