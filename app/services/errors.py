"""
WISP Manager - Errores del núcleo de cortes
Cada error trae un `code` estable que los routers devuelven como `reason`
para que el operador sepa si debe corregir datos o reintentar.
"""
from typing import Any, Optional


class CortesError(Exception):
    """Error base de los servicios de cortes."""
    code = "cortes_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSignupDate(CortesError):
    """Fecha de alta vacía o imposible de interpretar."""
    code = "invalid_signup_date"

    def __init__(self, client_id: Any, raw_value: Any):
        super().__init__(f"Cliente {client_id}: fecha de alta inválida ({raw_value!r})")
        self.client_id = client_id
        self.raw_value = raw_value


class RepositoryUnavailable(CortesError):
    """No se pudo leer o escribir en el repositorio de clientes/pagos."""
    code = "repository_unavailable"


class ClientNotFound(CortesError):
    code = "client_not_found"

    def __init__(self, client_id: Any):
        super().__init__(f"Cliente {client_id} no encontrado")
        self.client_id = client_id


class InvalidFilter(CortesError):
    """Filtro de región o de meses mal formado (se rechaza antes del barrido)."""
    code = "invalid_filter"


class ScanCancelled(CortesError):
    code = "scan_cancelled"


class IllegalTransition(CortesError):
    """Cambio de estado no permitido desde el estado actual."""
    code = "illegal_transition"


class DeviceNotBound(CortesError):
    """El cliente no tiene dispositivo o router vinculado."""
    code = "device_not_bound"

    def __init__(self, client_id: Any):
        super().__init__(
            f"Cliente {client_id}: no se encontró dispositivo o router asociado"
        )
        self.client_id = client_id


class ControllerError(CortesError):
    """Fallo del controlador de red (router)."""
    code = "controller_error"


class ControllerUnavailable(ControllerError):
    code = "controller_unavailable"


class ControllerTimeout(ControllerError):
    code = "controller_timeout"

    def __init__(self, operation: str, timeout: float, device_ip: Optional[str] = None):
        target = f" {device_ip}" if device_ip else ""
        super().__init__(
            f"El router no respondió a '{operation}'{target} en {timeout:g} segundos"
        )
        self.operation = operation
        self.timeout = timeout
