"""Ciclo de vida de la conexión con la instancia de WhatsApp.

Un único ConnectionManager por proceso (registrado en kink) es dueño del
estado. Manager, poller y webhook mutan ese estado sólo a través de
``_transition`` bajo el mismo lock; ninguna llamada HTTP corre con el lock
tomado.

Cada ciclo de reconciliación tiene una generación: ``initialize``,
``disconnect`` y los eventos del webhook la incrementan y cancelan el poller
activo, así que un tick tardío de un poller viejo no puede pisar el estado.
"""
from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Any, Callable
from kink import di
from ...core.settings import Settings
from ...core.logging import get_logger
from ...ports.interfaces import ConnectionSnapshot, ConnectionStatus, GatewayPort
from ...tasks.connection_poller import ConnectionPoller

log = get_logger()

MSG_DISCONNECTED = "Desconectado"
MSG_CONNECTED = "Conectado y listo para enviar mensajes"

@dataclass
class ConnectionState:
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    status_message: str = MSG_DISCONNECTED
    qr_code: str | None = None

    @property
    def is_connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

def extract_state(payload: dict | None) -> str | None:
    """El estado viene en ``instance.state`` o en ``state`` según la versión."""
    if not isinstance(payload, dict):
        return None
    instance = payload.get("instance")
    if isinstance(instance, dict) and instance.get("state"):
        return instance["state"]
    return payload.get("state")

def extract_qr(payload: dict | None) -> str | None:
    """Imagen del QR de la respuesta de connect como data URI, o None si no vino.

    Orden: ``qrcode.base64``, ``base64``, ``qrcode`` (string) y recién al final
    ``code``.
    """
    if not isinstance(payload, dict):
        return None
    nested = payload.get("qrcode")
    candidates = [
        nested.get("base64") if isinstance(nested, dict) else None,
        payload.get("base64"),
        nested if isinstance(nested, str) else None,
        payload.get("code"),
    ]
    qr = next((c for c in candidates if isinstance(c, str) and c), None)
    if qr is None:
        return None
    if not qr.startswith("data:image"):
        qr = f"data:image/png;base64,{qr}"
    return qr

class ConnectionManager:
    def __init__(
        self,
        gateway: GatewayPort,
        settings: Settings | None = None,
        poller_factory: Callable[..., ConnectionPoller] = ConnectionPoller,
    ):
        self.s = settings or di[Settings]
        self.gateway = gateway
        self._poller_factory = poller_factory
        self._lock = threading.RLock()
        self._state = ConnectionState()
        self._generation = 0
        self._poller: ConnectionPoller | None = None
        log.info("whatsapp_configured", api_url=self.s.evolution_api_url, instance=self.s.evolution_instance_name)

    # --- Lectura ---
    def get_status(self) -> ConnectionSnapshot:
        with self._lock:
            st = self._state
            return ConnectionSnapshot(
                status=st.status,
                message=st.status_message,
                is_connected=st.is_connected,
                qr_code=st.qr_code,
                instance_name=self.s.evolution_instance_name,
            )

    @property
    def is_connected(self) -> bool:
        with self._lock:
            return self._state.is_connected

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def active_poller(self) -> ConnectionPoller | None:
        with self._lock:
            if self._poller is not None and self._poller.active:
                return self._poller
            return None

    # --- Transiciones ---
    def _transition(self, status: ConnectionStatus, message: str, *, qr_code: str | None = None,
                    generation: int | None = None) -> bool:
        """Aplica un cambio de estado completo. Con ``generation`` vieja no hace nada."""
        with self._lock:
            if generation is not None and generation != self._generation:
                log.info("stale_transition_ignored", status=status.value, generation=generation, current=self._generation)
                return False
            previous = self._state.status
            self._state.status = status
            self._state.status_message = message
            self._state.qr_code = qr_code if status is ConnectionStatus.QR_READY else None
        if previous is not status:
            log.info("connection_status_changed", previous=previous.value, status=status.value, message=message)
        return True

    def _new_generation(self) -> int:
        """Invalida el ciclo actual: cancela el poller y devuelve la nueva generación."""
        with self._lock:
            if self._poller is not None:
                self._poller.cancel()
                self._poller = None
            self._generation += 1
            return self._generation

    # --- Operaciones ---
    def initialize(self) -> bool:
        """Verifica la instancia y conecta o pide QR. No espera a que se escanee."""
        gen = self._new_generation()
        log.info("initialize_started", instance=self.s.evolution_instance_name, generation=gen)
        self._transition(ConnectionStatus.CONNECTING, "Verificando conexión existente...", generation=gen)
        try:
            state = extract_state(self.gateway.query_state())
            log.info("instance_state", state=state or "desconocido")
            if state == "open":
                if self._transition(ConnectionStatus.CONNECTED, MSG_CONNECTED, generation=gen):
                    self._after_connected()
                    self._non_critical("profile_probe", self.gateway.fetch_profile)
                return True
            self._transition(ConnectionStatus.DISCONNECTED, "La instancia no está conectada a WhatsApp", generation=gen)
        except Exception as e:
            log.error("initialize_failed", error=str(e))
            # Si otro ciclo ya tomó el control, este fallo no es el resultado.
            return not self._transition(ConnectionStatus.ERROR, f"Error: {e}", generation=gen)
        return self._reconnect(gen)

    def _reconnect(self, gen: int) -> bool:
        log.info("reconnect_requested", instance=self.s.evolution_instance_name)
        try:
            qr = extract_qr(self.gateway.request_connect())
            if not qr:
                raise ValueError("No se pudo generar QR para reconexión")
        except Exception as e:
            log.error("reconnect_failed", error=str(e))
            return not self._transition(ConnectionStatus.ERROR, f"Error al intentar reconectar: {e}", generation=gen)
        with self._lock:
            if not self._transition(ConnectionStatus.QR_READY, "Escanea el código QR para reconectar",
                                    qr_code=qr, generation=gen):
                return True
            self._poller = self._poller_factory(
                gen,
                self._probe_open,
                self._on_poll_open,
                self._on_poll_exhausted,
                interval_s=self.s.poll_interval_s,
                max_attempts=self.s.poll_max_attempts,
            )
            self._poller.start()
        log.info("qr_ready", generation=gen)
        return True

    def disconnect(self) -> None:
        gen = self._new_generation()
        self._transition(ConnectionStatus.DISCONNECTED, MSG_DISCONNECTED, generation=gen)
        if self.s.logout_on_disconnect:
            self._non_critical("logout", self.gateway.logout)

    def instance_info(self) -> dict | None:
        """Datos de esta instancia en /instance/fetchInstances; None si no se pudo."""
        try:
            instances = self.gateway.fetch_instances()
        except Exception as e:
            log.error("instance_info_failed", error=str(e))
            return None
        for inst in instances:
            data = inst.get("instance") if isinstance(inst.get("instance"), dict) else inst
            name = data.get("instanceName") or data.get("name")
            if name == self.s.evolution_instance_name:
                return inst
        return None

    # --- Eventos externos (webhook) ---
    def mark_connected(self, message: str = "Conectado vía webhook") -> None:
        gen = self._new_generation()
        self._transition(ConnectionStatus.CONNECTED, message, generation=gen)

    def mark_disconnected(self, message: str = MSG_DISCONNECTED) -> None:
        gen = self._new_generation()
        self._transition(ConnectionStatus.DISCONNECTED, message, generation=gen)

    # --- Callbacks del poller ---
    def _probe_open(self) -> bool:
        return extract_state(self.gateway.query_state()) == "open"

    def _on_poll_open(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                log.info("stale_poll_ignored", generation=generation, current=self._generation)
                return
            self._poller = None
        if self._transition(ConnectionStatus.CONNECTED, MSG_CONNECTED, generation=generation):
            log.info("reconnected")
            self._after_connected()

    def _on_poll_exhausted(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._state.is_connected:
                return
            self._poller = None
            self._transition(ConnectionStatus.TIMEOUT, "Tiempo agotado esperando conexión", generation=generation)
        log.warning("poller_timeout", generation=generation)

    # --- Efectos secundarios no críticos ---
    def _after_connected(self) -> None:
        if self.s.evolution_webhook_url:
            self._non_critical("webhook_setup", self.gateway.register_webhook,
                               self.s.evolution_webhook_url, self.s.webhook_events)

    def _non_critical(self, name: str, fn: Callable[..., Any], *args) -> bool:
        """Ejecuta ``fn``; un fallo se loguea y se descarta, el estado no cambia."""
        try:
            fn(*args)
        except Exception as e:
            log.warning(f"{name}_failed", error=str(e))
            return False
        log.info(f"{name}_ok")
        return True
