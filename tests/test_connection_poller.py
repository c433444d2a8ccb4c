"""Pruebas del ConnectionPoller aislado, con callbacks simulados."""
from unittest.mock import Mock

from sistema_puntos.tasks.connection_poller import ConnectionPoller


def make_poller(probe, max_attempts=3, interval_s=3600):
    on_open, on_exhausted = Mock(), Mock()
    p = ConnectionPoller(7, probe, on_open, on_exhausted, interval_s=interval_s, max_attempts=max_attempts)
    return p, on_open, on_exhausted


def test_tick_open_calls_on_open_once_with_generation():
    p, on_open, on_exhausted = make_poller(lambda: True)
    assert p.tick() is True
    assert p.tick() is True
    on_open.assert_called_once_with(7)
    on_exhausted.assert_not_called()
    assert not p.active


def test_exhaustion_after_max_attempts():
    p, on_open, on_exhausted = make_poller(lambda: False, max_attempts=2)
    assert p.tick() is False
    assert p.tick() is True
    on_exhausted.assert_called_once_with(7)
    on_open.assert_not_called()


def test_probe_exception_counts_as_attempt():
    probe = Mock(side_effect=RuntimeError("boom"))
    p, on_open, on_exhausted = make_poller(probe, max_attempts=2)
    p.tick()
    p.tick()
    assert probe.call_count == 2
    on_exhausted.assert_called_once_with(7)


def test_cancelled_poller_does_nothing():
    probe = Mock(return_value=True)
    p, on_open, _ = make_poller(probe)
    p.cancel()
    assert p.tick() is True
    probe.assert_not_called()
    on_open.assert_not_called()


def test_thread_stops_on_cancel():
    probe = Mock(return_value=False)
    p, _, on_exhausted = make_poller(probe, max_attempts=10_000, interval_s=0.01)
    p.start()
    p.cancel()
    p.join(timeout=2)
    on_exhausted.assert_not_called()


def test_thread_runs_until_exhausted():
    p, _, on_exhausted = make_poller(lambda: False, max_attempts=3, interval_s=0.01)
    p.start()
    p.join(timeout=5)
    assert p.attempts == 3
    on_exhausted.assert_called_once_with(7)
