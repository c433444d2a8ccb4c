"""Polling de conexión tras mostrar el QR.

Un hilo daemon consulta el estado del gateway cada ``interval_s`` hasta que la
instancia queda ``open`` o se agotan ``max_attempts``. Cada poller lleva la
generación con la que fue creado; el ConnectionManager descarta resultados de
generaciones viejas.
"""
from __future__ import annotations
import threading
from typing import Callable
from ..core.logging import get_logger

log = get_logger()

class ConnectionPoller:
    def __init__(
        self,
        generation: int,
        probe: Callable[[], bool],
        on_open: Callable[[int], None],
        on_exhausted: Callable[[int], None],
        *,
        interval_s: float = 3.0,
        max_attempts: int = 40,
    ):
        self.generation = generation
        self.interval_s = interval_s
        self.max_attempts = max_attempts
        self.attempts = 0
        self._probe = probe
        self._on_open = on_open
        self._on_exhausted = on_exhausted
        self._stop = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def active(self) -> bool:
        return not self._stop.is_set()

    def start(self) -> None:
        log.info("poller_started", generation=self.generation, interval_s=self.interval_s, max_attempts=self.max_attempts)
        self._thread = threading.Thread(target=self._run, name=f"connection-poller-{self.generation}", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        if not self._stop.is_set():
            log.info("poller_cancelled", generation=self.generation, attempts=self.attempts)
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        # Primera consulta recién después de un intervalo, como un setInterval.
        while not self._stop.wait(self.interval_s):
            if self.tick():
                break

    def tick(self) -> bool:
        """Una verificación. Devuelve True cuando el poller terminó."""
        with self._tick_lock:
            if self._stop.is_set():
                return True
            self.attempts += 1
            try:
                if self._probe():
                    self._stop.set()
                    log.info("poller_open", generation=self.generation, attempts=self.attempts)
                    self._on_open(self.generation)
                    return True
            except Exception as e:
                log.warning("poller_check_failed", generation=self.generation, attempt=self.attempts, error=str(e))
            if self.attempts >= self.max_attempts:
                self._stop.set()
                log.info("poller_exhausted", generation=self.generation, attempts=self.attempts)
                self._on_exhausted(self.generation)
                return True
            return False
