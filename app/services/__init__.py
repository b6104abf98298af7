"""
WISP Manager - Services
Núcleo de cortes e integración con routers MikroTik.
"""
from app.services.mikrotik_service import MikroTikService, MikroTikError
from app.services.mikrotik_helper import get_mikrotik_for_router
from app.services.network_controller import (
    NetworkController,
    SimulatedNetworkController,
    MikroTikNetworkController,
    get_network_controller,
)

__all__ = [
    "MikroTikService",
    "MikroTikError",
    "get_mikrotik_for_router",
    "NetworkController",
    "SimulatedNetworkController",
    "MikroTikNetworkController",
    "get_network_controller",
]
