"""Envío masivo secuencial, con pausa entre mensajes y resultado por destinatario."""
from __future__ import annotations
import threading
import time
from typing import Callable, Sequence
from kink import di
from ...core.settings import Settings
from ...core.errors import NotConnectedError
from ...core.logging import get_logger
from ...core.phone import normalize_phone
from ...ports.interfaces import DispatchOutcome, GatewayPort, Recipient, summarize
from .connection_manager import ConnectionManager

log = get_logger()

def render_message(template: str, display_name: str | None, placeholder: str = "[NOMBRE]") -> str:
    """Reemplaza todas las apariciones del placeholder por el nombre. Sin evaluar nada."""
    return template.replace(placeholder, display_name or "")

class BulkDispatcher:
    def __init__(
        self,
        manager: ConnectionManager | None = None,
        gateway: GatewayPort | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.manager = manager or di[ConnectionManager]
        self.gateway = gateway or self.manager.gateway
        self.s = settings or di[Settings]
        self._sleep = sleep

    def _require_connected(self) -> None:
        if not self.manager.is_connected:
            raise NotConnectedError()

    def send_message(self, phone: str, text: str, recipient: Recipient | None = None) -> DispatchOutcome:
        """Envío individual. Sólo lanza NotConnectedError; los fallos de envío van en el resultado."""
        self._require_connected()
        try:
            number = normalize_phone(phone)
            log.info("message_sending", phone=phone, number=number)
            receipt = self.gateway.send_text(number, text)
        except Exception as e:
            log.error("message_failed", phone=phone, error=str(e))
            return DispatchOutcome(recipient=recipient, phone=phone, message=text, success=False, error=str(e))
        if receipt.ok:
            log.info("message_sent", phone=phone, provider_message_id=receipt.provider_message_id)
            return DispatchOutcome(recipient=recipient, phone=phone, message=text, success=True,
                                   gateway_message_id=receipt.provider_message_id)
        error = receipt.error_detail or f"gateway error {receipt.error_code}"
        log.error("message_failed", phone=phone, error_code=receipt.error_code, error=error)
        return DispatchOutcome(recipient=recipient, phone=phone, message=text, success=False, error=error)

    def send_bulk(
        self,
        recipients: Sequence[Recipient],
        template: str,
        cancel: threading.Event | None = None,
    ) -> list[DispatchOutcome]:
        """Envía ``template`` personalizado a cada destinatario, en orden.

        Falla sin enviar nada si la instancia no está conectada. Devuelve
        exactamente un resultado por destinatario; los fallos individuales no
        cortan el lote y no se reintentan. Entre envíos consecutivos espera
        ``bulk_delay_s``. Si ``cancel`` se activa, los destinatarios que faltan
        quedan como fallidos con error de cancelación.
        """
        self._require_connected()
        total = len(recipients)
        log.info("bulk_started", total=total)
        results: list[DispatchOutcome] = []
        for i, rcpt in enumerate(recipients):
            text = render_message(template, rcpt.display_name, self.s.name_placeholder)
            if cancel is not None and cancel.is_set():
                results.append(DispatchOutcome(recipient=rcpt, phone=rcpt.phone_raw, message=text,
                                               success=False, error="envío cancelado"))
                continue
            log.info("bulk_sending", index=i + 1, total=total, name=rcpt.display_name, phone=rcpt.phone_raw)
            try:
                outcome = self.send_message(rcpt.phone_raw, text, recipient=rcpt)
            except Exception as e:
                log.error("bulk_item_failed", name=rcpt.display_name, error=str(e))
                outcome = DispatchOutcome(recipient=rcpt, phone=rcpt.phone_raw, message=text,
                                          success=False, error=str(e))
            results.append(outcome)
            if i < total - 1 and not (cancel is not None and cancel.is_set()):
                self._sleep(self.s.bulk_delay_s)
        summary = summarize(results)
        log.info("bulk_finished", total=summary.total, succeeded=summary.succeeded, failed=summary.failed)
        return results
