# ============================================================
# network.py — État de connectivité + moniteur réseau
# ------------------------------------------------------------
# ConnectivityState : seule source de vérité {ONLINE, OFFLINE},
#   écrite uniquement par NetworkMonitor, lue par le pipeline de
#   soumission et le moteur de resync (injectée à la construction).
# NetworkMonitor : transforme les signaux bruts (sonde HTTP
#   périodique, hooks du système via l'API) en fronts propres
#   online->offline / offline->online. Un état stable ne
#   déclenche rien. Aucune réaction ne bloque l'appelant : tout
#   part dans un thread ou un timer.
# ============================================================
import threading
from enum import Enum
from typing import Callable, List, Optional

from .config import PROBE_INTERVAL_SEC, RESYNC_SETTLE_DELAY_SEC, STARTUP_DRAIN_DELAY_SEC


class Connectivity(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"


class ConnectivityState:
    def __init__(self, initial: Connectivity = Connectivity.OFFLINE):
        self._current = initial
        self._lock = threading.Lock()

    @property
    def current(self) -> Connectivity:
        return self._current

    @property
    def online(self) -> bool:
        return self._current is Connectivity.ONLINE

    # Retourne True seulement si l'état change (front)
    def transition(self, new: Connectivity) -> bool:
        with self._lock:
            previous, self._current = self._current, new
        return previous is not new


def _spawn(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


def _later(delay: float, fn: Callable[[], None]) -> None:
    t = threading.Timer(delay, fn)
    t.daemon = True
    t.start()


class NetworkMonitor:
    def __init__(self, state: ConnectivityState, queue, resync, notifier,
                 probe: Optional[Callable[[], bool]] = None,
                 settle_delay: float = RESYNC_SETTLE_DELAY_SEC,
                 startup_delay: float = STARTUP_DRAIN_DELAY_SEC,
                 interval: float = PROBE_INTERVAL_SEC,
                 dispatch: Callable[[Callable[[], None]], None] = _spawn,
                 schedule: Callable[[float, Callable[[], None]], None] = _later):
        self.state = state
        self.queue = queue
        self.resync = resync
        self.notifier = notifier
        self.probe = probe
        self.settle_delay = settle_delay
        self.startup_delay = startup_delay
        self.interval = interval
        self.dispatch = dispatch
        self.schedule = schedule
        self._listeners: List[Callable[[Connectivity], None]] = []
        self._started = False
        self._lock = threading.Lock()
        self._stop = threading.Event()

    def subscribe(self, listener: Callable[[Connectivity], None]) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------
    # start() — une seule inscription par processus
    # ------------------------------------------------------------
    # La sonde initiale et la boucle tournent dans un thread : si
    # l'état initial est ONLINE, le compte des données en attente
    # et un drain différé sont programmés (données restées en file
    # d'une session hors ligne précédente).
    # ------------------------------------------------------------
    def start(self) -> bool:
        with self._lock:
            if self._started:
                return False
            self._started = True
        self.dispatch(self._run)
        return True

    def stop(self) -> None:
        self._stop.set()

    def _run(self) -> None:
        initial = Connectivity.ONLINE if self._probe() else Connectivity.OFFLINE
        # état initial : pas un front, pas de toast de connexion
        self.state.transition(initial)
        print(f"[network] monitoring started, initial state {initial.value}", flush=True)
        if initial is Connectivity.ONLINE:
            # compte des données restées en file, puis drain
            self.schedule(self.startup_delay, self._report_pending)
            self.schedule(self.startup_delay, self._drain)
        if self.probe is None or self.interval <= 0:
            return
        while not self._stop.wait(self.interval):
            self.signal(self._probe())

    def _probe(self) -> bool:
        if self.probe is None:
            return self.state.online
        try:
            return bool(self.probe())
        except Exception as e:
            print(f"[network] probe error: {e}", flush=True)
            return False

    # Point d'entrée des signaux bruts de la plateforme
    def signal(self, online: bool) -> bool:
        target = Connectivity.ONLINE if online else Connectivity.OFFLINE
        if not self.state.transition(target):
            return False
        print(f"[network] now {target.value}", flush=True)
        if online:
            self.dispatch(self._went_online)
            # laisse la plateforme finir sa reconnexion avant le drain
            self.schedule(self.settle_delay, self._drain)
        else:
            self.dispatch(self._went_offline)
        self.dispatch(self._report_pending)
        return True

    def _went_online(self) -> None:
        self.notifier.success("Network connection restored")
        self._emit(Connectivity.ONLINE)

    def _went_offline(self) -> None:
        self.notifier.error("Network connection lost",
                            "Check-ins will be saved on this device")
        self._emit(Connectivity.OFFLINE)

    def _emit(self, tag: Connectivity) -> None:
        for listener in list(self._listeners):
            try:
                listener(tag)
            except Exception as e:
                print(f"[network] listener error: {e}", flush=True)

    def _report_pending(self) -> None:
        count = self.queue.count()
        if count == 0:
            return
        if self.state.online:
            self.notifier.info(f"{count} pending check-in(s)",
                               "They will be sent automatically")
        else:
            self.notifier.info(f"{count} pending check-in(s) saved on this device",
                               "They will be sent when the network is back")

    def _drain(self) -> None:
        self.resync.drain()
