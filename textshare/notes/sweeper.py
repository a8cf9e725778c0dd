import logging
import threading

log = logging.getLogger("textshare.notes.sweeper")


class ExpirySweeper:
    """Purge périodique des notes expirées, dans un thread daemon.

    Simple optimisation de stockage : l'expiration est déjà appliquée
    à chaque lecture par le store.
    """

    def __init__(self, app, store, interval_seconds: float):
        self.app = app
        self.store = store
        self.interval = interval_seconds
        self._stop = threading.Event()
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="note-expiry-sweeper", daemon=True)
        self._thread.start()
        log.info("sweeper_started", extra={"interval_seconds": self.interval})

    def stop(self, timeout: float = 5.0):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            log.info("sweeper_stopped")

    def sweep_once(self) -> int:
        # session SQLAlchemy propre au contexte d'app de ce thread
        with self.app.app_context():
            return self.store.purge_expired()

    def _run(self):
        while not self._stop.wait(self.interval):
            try:
                self.sweep_once()
            except Exception:
                # la boucle doit survivre ; la lecture reste correcte sans elle
                log.exception("sweeper_iteration_failed")
