"""Ingesta de eventos del webhook de la Evolution API.

Sólo interesa ``connection.update``. El gateway manda el sobre de dos formas
(``{"event", "state"}`` o ``{"event", "data": {"state"}}``, a veces con el
evento anidado en ``data``) y ambas se aceptan. Todo lo demás se ignora.
"""
from __future__ import annotations
from typing import Any
from kink import di
from ...core.logging import get_logger
from .connection_manager import ConnectionManager

log = get_logger()

CONNECTION_UPDATE = "connection.update"

def _event_name(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    # Con webhookByEvents llega como CONNECTION_UPDATE
    return value.strip().lower().replace("_", ".")

def parse_connection_state(raw: Any) -> str | None:
    """Devuelve ``open``/``close``/... si ``raw`` es un connection.update; si no, None."""
    if not isinstance(raw, dict):
        return None
    data = raw.get("data")
    nested = data if isinstance(data, dict) else None
    event = _event_name(raw.get("event")) or _event_name((nested or {}).get("event"))
    if event != CONNECTION_UPDATE:
        return None
    body = nested or raw
    state = body.get("state")
    return state if isinstance(state, str) else None

class WebhookIngestor:
    def __init__(self, manager: ConnectionManager | None = None):
        self.manager = manager or di[ConnectionManager]

    def ingest(self, raw: Any) -> None:
        """Aplica el evento al estado de conexión. Nunca lanza."""
        try:
            event = raw.get("event") if isinstance(raw, dict) else None
            log.info("webhook_in", webhook_event=event)
            state = parse_connection_state(raw)
            if state == "open":
                self.manager.mark_connected("Conectado vía webhook")
                log.info("webhook_connected")
            elif state == "close":
                self.manager.mark_disconnected("Desconectado")
                log.info("webhook_disconnected")
        except Exception as e:
            log.error("webhook_ingest_failed", error=str(e))
