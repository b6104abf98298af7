"""
WISP Manager - Schemas comunes
"""
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str
    reason: str            # device_not_bound, controller_timeout, ...


ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Cliente no encontrado"},
    409: {"model": ErrorResponse, "description": "Cambio de estado no permitido"},
    422: {"model": ErrorResponse, "description": "Datos del cliente o filtros inválidos"},
    502: {"model": ErrorResponse, "description": "Router no disponible"},
    503: {"model": ErrorResponse, "description": "Base de datos no disponible"},
    504: {"model": ErrorResponse, "description": "El router no respondió a tiempo"},
}
