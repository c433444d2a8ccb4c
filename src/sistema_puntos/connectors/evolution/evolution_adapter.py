"""Adapter HTTP de la Evolution API (gateway WhatsApp) para estado, QR, webhook y envío."""
from __future__ import annotations
from typing import Any, Sequence
import httpx
from kink import di
from ...core.settings import Settings
from ...core.errors import GatewayError
from ...ports.interfaces import GatewayReceipt

class EvolutionAdapter:
    """Adapter para una instancia de la Evolution API.

    Cada llamada abre su propio ``httpx.Client`` con timeout explícito.
    ``transport`` permite inyectar ``httpx.MockTransport`` en pruebas.
    """
    def __init__(self, settings: Settings | None = None, transport: httpx.BaseTransport | None = None):
        self.s = settings or di[Settings]
        self._transport = transport

    @property
    def instance(self) -> str:
        return self.s.evolution_instance_name

    def _client(self, timeout: float | None) -> httpx.Client:
        headers = {"Content-Type": "application/json", "apikey": self.s.evolution_api_key}
        return httpx.Client(
            base_url=self.s.evolution_api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )

    @staticmethod
    def _json_or_raise(r: httpx.Response) -> Any:
        if r.status_code // 100 != 2:
            raise GatewayError(r.status_code, r.text[:300])
        if not r.content:
            return {}
        return r.json()

    # --- Conexión ---
    def query_state(self) -> dict | None:
        """Estado de la instancia (``{"instance": {"state": ...}}``); None si no existe."""
        with self._client(self.s.state_timeout_s) as cli:
            r = cli.get(f"/instance/connectionState/{self.instance}")
        if r.status_code == 404:
            return None
        return self._json_or_raise(r)

    def request_connect(self) -> dict:
        """Pide reconexión; la respuesta trae el QR (``qrcode.base64``, ``qrcode`` o ``code``)."""
        with self._client(self.s.connect_timeout_s) as cli:
            r = cli.get(f"/instance/connect/{self.instance}")
        return self._json_or_raise(r)

    def register_webhook(self, url: str, events: Sequence[str]) -> dict:
        payload = {
            "webhook": {
                "url": url,
                "events": list(events),
                "webhookByEvents": True,
                "webhookBase64": False,
            }
        }
        with self._client(self.s.state_timeout_s) as cli:
            r = cli.put(f"/webhook/set/{self.instance}", json=payload)
        return self._json_or_raise(r)

    def fetch_profile(self) -> dict:
        with self._client(self.s.profile_timeout_s) as cli:
            r = cli.get(f"/chat/whatsappProfile/{self.instance}")
        return self._json_or_raise(r)

    def fetch_instances(self) -> list[dict]:
        with self._client(self.s.state_timeout_s) as cli:
            r = cli.get("/instance/fetchInstances")
        data = self._json_or_raise(r)
        return data if isinstance(data, list) else []

    def logout(self) -> dict:
        with self._client(self.s.state_timeout_s) as cli:
            r = cli.delete(f"/instance/logout/{self.instance}")
        return self._json_or_raise(r)

    # --- Egress ---
    def send_text(self, number: str, text: str) -> GatewayReceipt:
        """Envía texto simple. Errores HTTP vuelven como recibo; los de red se propagan."""
        payload = {"number": number, "text": text}
        with self._client(self.s.send_timeout_s) as cli:
            r = cli.post(f"/message/sendText/{self.instance}", json=payload)
        if r.status_code // 100 == 2:
            j = r.json() if r.content else {}
            provider_id = (j.get("key") or {}).get("id")
            return GatewayReceipt(ok=True, provider_message_id=provider_id)
        j = {}
        if "application/json" in r.headers.get("content-type", ""):
            j = r.json()
        detail = j.get("message") or j.get("error") or r.text[:300]
        if isinstance(detail, list):
            detail = "; ".join(str(d) for d in detail)
        return GatewayReceipt(ok=False, error_code=str(r.status_code), error_detail=str(detail))
