# ============================================================
# kiosk.py — Assemblage des composants de la borne
# ------------------------------------------------------------
# Un seul ConnectivityState, créé ici et injecté dans le
# pipeline de soumission, le moteur de resync et le moniteur
# réseau (seul écrivain). build_kiosk() lit la configuration ;
# les tests construisent Kiosk directement avec leurs doubles.
# ============================================================
import threading
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from services.sync_worker.config import SYNC_ENABLED
from services.sync_worker.interceptor import BackgroundSyncTransport
from services.sync_worker.request_queue import RequestQueue

from .config import CHECKIN_ENDPOINT_URL, CHECKINS_COLLECTION, REMOTE_MODE
from .local_queue import LocalQueue
from .network import Connectivity, ConnectivityState, NetworkMonitor
from .notifier import Notifier
from .publisher import publish_event
from .remote import CheckinEndpointClient, DocumentStoreClient
from .resync import ResyncEngine
from .submission import SubmissionPipeline


class Kiosk:
    def __init__(self, queue: LocalQueue, store, notifier: Notifier, writer=None,
                 state: Optional[ConnectivityState] = None,
                 collection: str = CHECKINS_COLLECTION, **monitor_options):
        self.state = state or ConnectivityState()
        self.queue = queue
        self.store = store
        # écrivain utilisé par la soumission et le resync (store par défaut)
        self.writer = writer or store
        self.notifier = notifier
        self.collection = collection
        self.pipeline = SubmissionPipeline(self.state, queue, self.writer, notifier, collection)
        self.resync = ResyncEngine(self.state, queue, self.writer, notifier, collection)
        monitor_options.setdefault("probe", getattr(store, "ping", None))
        self.monitor = NetworkMonitor(self.state, queue, self.resync, notifier, **monitor_options)


# Transport intercepté si la plateforme sait faire du background sync
def background_sync_transport() -> BackgroundSyncTransport:
    if not SYNC_ENABLED:
        print("[kiosk] background sync not supported, plain transport", flush=True)
        return BackgroundSyncTransport(None)
    queue = RequestQueue()
    try:
        queue.open()
    except (SQLAlchemyError, OSError) as e:
        print(f"[kiosk] background sync queue unavailable, plain transport: {e}", flush=True)
        return BackgroundSyncTransport(None)
    return BackgroundSyncTransport(queue)


def build_kiosk() -> Kiosk:
    store = DocumentStoreClient()
    writer = None
    if REMOTE_MODE == "http":
        writer = CheckinEndpointClient(CHECKIN_ENDPOINT_URL, transport=background_sync_transport())
    kiosk = Kiosk(LocalQueue(), store, Notifier(publish=publish_event), writer=writer)

    # Front online relayé aux autres processus (occasion de sync)
    def relay(tag: Connectivity):
        if tag is Connectivity.ONLINE:
            try:
                publish_event("ConnectivityRestored", {})
            except Exception as e:
                print(f"[kiosk] could not relay reconnect: {e}", flush=True)

    kiosk.monitor.subscribe(relay)
    return kiosk


_kiosk: Optional[Kiosk] = None
_lock = threading.Lock()


# Dépendance FastAPI : la borne du processus
def get_kiosk() -> Kiosk:
    global _kiosk
    with _lock:
        if _kiosk is None:
            _kiosk = build_kiosk()
    return _kiosk
