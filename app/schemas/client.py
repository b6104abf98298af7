"""
WISP Manager - Schemas: estado de servicio del cliente
"""
from pydantic import BaseModel
from typing import Optional, List


class StatusChangeRequest(BaseModel):
    status: str            # activo, cortado, pausado, recoger_equipo ("recoger equipo" también)


class StatusChangeResponse(BaseModel):
    client_id: int
    previous_status: str
    status: str


class SuspendResponse(BaseModel):
    client_id: int
    previous_status: str
    status: str = "suspendido"
    device_ip: str
    router_id: int
    control_mode: str


class ReactivateResponse(BaseModel):
    client_id: int
    previous_status: str
    status: str = "activo"
    router_notified: bool = False
    warnings: List[str] = []
