"""Pruebas de WebhookIngestor."""
import pytest

from sistema_puntos.domain.services.webhook_ingestor import WebhookIngestor, parse_connection_state
from sistema_puntos.ports.interfaces import ConnectionStatus


@pytest.fixture
def ingestor(manager):
    return WebhookIngestor(manager)


def test_open_event_connects_and_clears_qr(manager, ingestor):
    manager.initialize()
    assert manager.get_status().qr_code is not None
    ingestor.ingest({"event": "connection.update", "instance": "test-instance",
                     "data": {"instance": "test-instance", "state": "open", "statusReason": 200}})
    snap = manager.get_status()
    assert snap.status is ConnectionStatus.CONNECTED
    assert snap.is_connected is True
    assert snap.qr_code is None
    assert manager.active_poller is None


def test_close_event_disconnects(manager, ingestor):
    ingestor.ingest({"event": "connection.update", "state": "open"})
    ingestor.ingest({"event": "connection.update", "state": "close"})
    snap = manager.get_status()
    assert snap.status is ConnectionStatus.DISCONNECTED
    assert snap.is_connected is False


def test_event_nested_under_data(manager, ingestor):
    ingestor.ingest({"data": {"event": "connection.update", "state": "open"}})
    assert manager.is_connected


def test_by_event_spelling(manager, ingestor):
    ingestor.ingest({"event": "CONNECTION_UPDATE", "data": {"state": "open"}})
    assert manager.is_connected


@pytest.mark.parametrize("raw", [
    {"event": "messages.upsert", "data": {"key": {"id": "X"}, "state": "open"}},
    {"event": "connection.update", "data": {"state": "connecting"}},
    {"event": "connection.update"},
    {"foo": "bar"},
    [],
    None,
    "texto",
    {"event": 42, "data": "x"},
])
def test_unrelated_or_malformed_events_leave_state_unchanged(manager, ingestor, raw):
    before = manager.get_status()
    ingestor.ingest(raw)
    assert manager.get_status() == before


def test_ingest_never_raises(manager, ingestor, monkeypatch):
    def boom(*_a, **_k):
        raise RuntimeError("lock roto")
    monkeypatch.setattr(manager, "mark_connected", boom)
    ingestor.ingest({"event": "connection.update", "state": "open"})


def test_close_invalidates_running_poller(manager, gateway, ingestor):
    manager.initialize()
    poller = manager.active_poller
    ingestor.ingest({"event": "connection.update", "data": {"state": "close"}})
    gateway.state = {"instance": {"state": "open"}}
    poller.tick()
    assert manager.get_status().status is ConnectionStatus.DISCONNECTED


def test_parse_connection_state_prefers_nested_data():
    assert parse_connection_state({"event": "connection.update", "state": "close", "data": {"state": "open"}}) == "open"
