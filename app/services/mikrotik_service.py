"""
WISP Manager - Servicio MikroTik API 8728
Conecta al MikroTik vía API nativa (puerto 8728) para cortar y reconectar
el acceso de un dispositivo de cliente según el modo de control del router:

  - queue:         deshabilita / habilita la Simple Queue cuyo target es la IP
  - address-list:  agrega / quita la IP de la lista "morosos"
  - pppoe:         deshabilita / habilita el PPP Secret con remote-address = IP
  - firewall:      agrega / quita una regla drop con src-address = IP
  - hotspot:       deshabilita / habilita el usuario hotspot con address = IP

Usa librouteros para comunicación con RouterOS.
Todas las operaciones son async vía asyncio.to_thread().
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import librouteros
from librouteros import connect
from librouteros.exceptions import (
    TrapError,
    ConnectionClosed,
    FatalError
)

from app.models.network import ControlMode

logger = logging.getLogger("mikrotik_service")

FIREWALL_COMMENT_PREFIX = "corte"


@dataclass
class MikroTikCredentials:
    """Credenciales de conexión a un MikroTik."""
    host: str
    port: int = 8728
    username: str = "admin"
    password: str = ""


class MikroTikError(Exception):
    """Error de comunicación con MikroTik."""
    pass


class MikroTikService:
    """
    Servicio para cortar y reconectar clientes en un MikroTik RouterOS.

    Uso:
        service = MikroTikService(host="192.168.88.1", username="admin", password="pass")
        await service.suspend_device("10.10.10.5", ControlMode.ADDRESS_LIST)
    """

    def __init__(
        self, host: str, port: int = 8728, username: str = "admin",
        password: str = "", timeout: int = 10, morosos_list: str = "morosos"
    ):
        self.credentials = MikroTikCredentials(
            host=host,
            port=port,
            username=username,
            password=password
        )
        self.timeout = timeout
        self.morosos_list = morosos_list

    # ================================================================
    # CONEXIÓN
    # ================================================================

    def _connect_sync(self) -> librouteros.api.Api:
        """Conexión síncrona al MikroTik (se ejecuta en thread)."""
        try:
            return connect(
                host=self.credentials.host,
                port=self.credentials.port,
                username=self.credentials.username,
                password=self.credentials.password,
                timeout=self.timeout
            )
        except (ConnectionRefusedError, OSError) as e:
            raise MikroTikError(
                f"No se pudo conectar a MikroTik {self.credentials.host}:{self.credentials.port} - {e}"
            )
        except TrapError as e:
            raise MikroTikError(f"Error de autenticación en MikroTik: {e}")

    async def _execute(self, path: str, command: str = "print", **kwargs) -> List[Dict[str, Any]]:
        """
        Ejecuta un comando en el MikroTik.

        Args:
            path: Ruta del API, ej: "/ip/firewall/address-list"
            command: Comando (print, add, set, remove)
            **kwargs: Parámetros del comando (".id" para set/remove)
        """
        try:
            api = await asyncio.to_thread(self._connect_sync)
            try:
                resource = api.path(*path.strip("/").split("/"))

                if command == "print":
                    return await asyncio.to_thread(lambda: list(resource))
                elif command == "add":
                    result = await asyncio.to_thread(lambda: resource.add(**kwargs))
                    return [{".id": result}] if result else []
                elif command == "set":
                    await asyncio.to_thread(lambda: resource.update(**kwargs))
                    return [{"status": "updated"}]
                elif command == "remove":
                    await asyncio.to_thread(lambda: resource.remove(kwargs[".id"]))
                    return [{"status": "removed"}]
                raise MikroTikError(f"Comando no soportado: {command}")
            finally:
                api.close()

        except TrapError as e:
            raise MikroTikError(f"Error MikroTik [{path}]: {e}")
        except ConnectionClosed:
            raise MikroTikError("Conexión cerrada por el MikroTik")
        except FatalError as e:
            raise MikroTikError(f"Error fatal MikroTik: {e}")

    async def _find(self, path: str, **match) -> List[Dict[str, Any]]:
        items = await self._execute(path)
        return [i for i in items if all(i.get(k) == v for k, v in match.items())]

    async def _set_disabled(self, path: str, disabled: bool, **match) -> Dict[str, Any]:
        entries = await self._find(path, **match)
        if not entries:
            raise MikroTikError(f"No se encontró {path} con {match}")
        for entry in entries:
            await self._execute(path, "set", **{".id": entry[".id"], "disabled": disabled})
        return {"path": path, "updated": len(entries), "disabled": disabled}

    # ================================================================
    # ADDRESS LIST (MOROSOS)
    # ================================================================

    async def add_to_address_list(self, address: str, comment: str = "Suspendido por sistema") -> Dict[str, Any]:
        existing = await self._find("/ip/firewall/address-list", list=self.morosos_list, address=address)
        if existing:
            return {"action": "address_already_listed", "address": address}
        await self._execute(
            "/ip/firewall/address-list", "add",
            list=self.morosos_list, address=address, comment=comment
        )
        logger.info(f"Agregado {address} a lista '{self.morosos_list}'")
        return {"action": "address_added", "address": address}

    async def remove_from_address_list(self, address: str) -> Dict[str, Any]:
        entries = await self._find("/ip/firewall/address-list", list=self.morosos_list, address=address)
        for entry in entries:
            await self._execute("/ip/firewall/address-list", "remove", **{".id": entry[".id"]})
        logger.info(f"Removido {address} de lista '{self.morosos_list}' ({len(entries)})")
        return {"action": "address_removed", "address": address, "removed": len(entries)}

    # ================================================================
    # FIREWALL (REGLA DROP POR IP)
    # ================================================================

    async def add_drop_rule(self, address: str) -> Dict[str, Any]:
        comment = f"{FIREWALL_COMMENT_PREFIX} {address}"
        if await self._find("/ip/firewall/filter", comment=comment):
            return {"action": "rule_exists", "address": address}
        await self._execute(
            "/ip/firewall/filter", "add",
            chain="forward", action="drop", **{"src-address": address}, comment=comment
        )
        return {"action": "rule_added", "address": address}

    async def remove_drop_rule(self, address: str) -> Dict[str, Any]:
        rules = await self._find("/ip/firewall/filter", comment=f"{FIREWALL_COMMENT_PREFIX} {address}")
        for rule in rules:
            await self._execute("/ip/firewall/filter", "remove", **{".id": rule[".id"]})
        return {"action": "rule_removed", "address": address, "removed": len(rules)}

    # ================================================================
    # CORTE / RECONEXIÓN POR MODO DE CONTROL
    # ================================================================

    async def suspend_device(self, ip_address: str, control_mode: ControlMode) -> Dict[str, Any]:
        """Corta el acceso de un dispositivo según el modo de control del router."""
        result = await self._apply(ip_address, control_mode, disabled=True)
        logger.info(f"Dispositivo suspendido: {ip_address} ({control_mode.value})")
        return result

    async def reactivate_device(self, ip_address: str, control_mode: ControlMode) -> Dict[str, Any]:
        """Restablece el acceso de un dispositivo suspendido."""
        result = await self._apply(ip_address, control_mode, disabled=False)
        logger.info(f"Dispositivo reactivado: {ip_address} ({control_mode.value})")
        return result

    async def _apply(self, ip_address: str, control_mode: ControlMode, disabled: bool) -> Dict[str, Any]:
        mode = ControlMode(control_mode)
        if mode == ControlMode.ADDRESS_LIST:
            if disabled:
                return await self.add_to_address_list(ip_address)
            return await self.remove_from_address_list(ip_address)
        if mode == ControlMode.FIREWALL:
            if disabled:
                return await self.add_drop_rule(ip_address)
            return await self.remove_drop_rule(ip_address)
        if mode == ControlMode.QUEUE:
            return await self._set_disabled("/queue/simple", disabled, target=f"{ip_address}/32")
        if mode == ControlMode.PPPOE:
            return await self._set_disabled("/ppp/secret", disabled, **{"remote-address": ip_address})
        if mode == ControlMode.HOTSPOT:
            return await self._set_disabled("/ip/hotspot/user", disabled, address=ip_address)
        raise MikroTikError(f"Modo de control no soportado: {control_mode}")
