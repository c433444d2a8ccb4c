"""Fixtures compartidos: settings de prueba y un gateway falso en memoria."""
from __future__ import annotations
import pytest

from sistema_puntos.core.settings import Settings
from sistema_puntos.domain.services.connection_manager import ConnectionManager
from sistema_puntos.ports.interfaces import GatewayReceipt


class FakeGateway:
    """Gateway en memoria. ``state`` puede ser un dict o una excepción a lanzar."""

    def __init__(self):
        self.state = {"instance": {"instanceName": "test-instance", "state": "close"}}
        self.connect_response = {"pairingCode": None, "code": "2@abc", "qrcode": {"base64": "QUJDRA=="}}
        self.webhook_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.send_effects: list = []
        self.instances: list = []
        self.calls: list[tuple] = []

    def _maybe_raise(self, value):
        if isinstance(value, Exception):
            raise value
        return value

    def query_state(self):
        self.calls.append(("query_state",))
        return self._maybe_raise(self.state)

    def request_connect(self):
        self.calls.append(("request_connect",))
        return self._maybe_raise(self.connect_response)

    def register_webhook(self, url, events):
        self.calls.append(("register_webhook", url, tuple(events)))
        if self.webhook_error:
            raise self.webhook_error
        return {"webhook": {"url": url}}

    def fetch_profile(self):
        self.calls.append(("fetch_profile",))
        if self.profile_error:
            raise self.profile_error
        return {"name": "Puntos"}

    def fetch_instances(self):
        self.calls.append(("fetch_instances",))
        return self._maybe_raise(self.instances)

    def logout(self):
        self.calls.append(("logout",))
        return {"status": "SUCCESS"}

    def send_text(self, number, text):
        self.calls.append(("send_text", number, text))
        if self.send_effects:
            effect = self.send_effects.pop(0)
            return self._maybe_raise(effect)
        return GatewayReceipt(ok=True, provider_message_id=f"MSG{len(self.sends)}")

    @property
    def sends(self):
        return [c for c in self.calls if c[0] == "send_text"]

    def called(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)


@pytest.fixture
def settings():
    # Intervalo largo: en las pruebas los ticks se disparan a mano.
    return Settings(
        evolution_api_url="http://evolution.test",
        evolution_api_key="test-key",
        evolution_instance_name="test-instance",
        evolution_webhook_url=None,
        poll_interval_s=3600,
        poll_max_attempts=3,
        bulk_delay_s=2,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def manager(gateway, settings):
    m = ConnectionManager(gateway, settings)
    yield m
    m.disconnect()
