"""Puertos (interfaces) y DTOs de la integración WhatsApp."""
from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, Sequence
from pydantic import BaseModel, ConfigDict, Field

class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    QR_READY = "qr-ready"
    CONNECTED = "connected"
    ERROR = "error"
    TIMEOUT = "timeout"

class ConnectionSnapshot(BaseModel):
    """Foto inmutable del estado de conexión, tal como la ve el llamador."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: ConnectionStatus
    message: str
    is_connected: bool = Field(serialization_alias="isConnected")
    qr_code: str | None = Field(default=None, serialization_alias="qrCode")
    instance_name: str = Field(serialization_alias="instanceName")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

class Recipient(BaseModel):
    """Destinatario de un envío masivo; lo arma la capa CRUD (cliente)."""
    model_config = ConfigDict(frozen=True)

    identifier: int | str | None = None
    display_name: str = ""
    phone_raw: str

class DispatchOutcome(BaseModel):
    """Resultado de un envío a un destinatario. Uno por destinatario, en orden."""
    model_config = ConfigDict(frozen=True)

    recipient: Recipient | None = None
    phone: str
    message: str = ""
    success: bool
    gateway_message_id: str | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DispatchSummary(BaseModel):
    total: int
    succeeded: int
    failed: int

def summarize(outcomes: Sequence[DispatchOutcome]) -> DispatchSummary:
    """Totales de un lote; el llamador los usa para su respuesta y su historial."""
    ok = sum(1 for o in outcomes if o.success)
    return DispatchSummary(total=len(outcomes), succeeded=ok, failed=len(outcomes) - ok)

class GatewayReceipt(BaseModel):
    """Resultado normalizado de un sendText en el gateway."""
    ok: bool
    provider_message_id: str | None = None
    error_code: str | None = None
    error_detail: str | None = None

class GatewayPort(Protocol):
    def query_state(self) -> dict | None: ...
    def request_connect(self) -> dict: ...
    def register_webhook(self, url: str, events: Sequence[str]) -> dict: ...
    def send_text(self, number: str, text: str) -> GatewayReceipt: ...
    def fetch_profile(self) -> dict: ...
    def fetch_instances(self) -> list[dict[str, Any]]: ...
    def logout(self) -> dict: ...
