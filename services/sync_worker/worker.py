# ============================================================
# worker.py — Background Sync Worker
# ------------------------------------------------------------
# Filet de sécurité indépendant du kiosk (aucune coordination
# avec la file locale / le moteur de resync) :
#   1️. register() : enregistre la tâche "sync-checkins" ; si la
#      plateforme n'a pas la capacité, on désactive en silence
#   2️. on_sync() : à chaque occasion (réseau revenu, réveil
#      périodique) rejoue la file et diffuse SYNC_COMPLETED
#   3️. on_push() / on_notification_click() : notifications push,
#      hors du contrat de durabilité
# ============================================================
import threading
from dataclasses import asdict, dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

import httpx
from sqlalchemy.exc import SQLAlchemyError

from .config import (PERIODIC_SYNC_SEC, PUSH_DEFAULT_BODY, PUSH_DEFAULT_TITLE, PUSH_DEFAULT_URL,
                     PUSH_ICON, REPLAY_TIMEOUT_SEC, SYNC_ENABLED, SYNC_TAG)
from .models import QueuedRequest
from .request_queue import ReplayResult, RequestQueue


@dataclass
class Notification:
    title: str
    body: str
    url: str
    icon: str = PUSH_ICON
    badge: str = PUSH_ICON
    tag: str = "checkin-update"
    vibrate: List[int] = field(default_factory=lambda: [100, 50, 100])


def http_sender(timeout: float = REPLAY_TIMEOUT_SEC) -> Callable[[QueuedRequest], httpx.Response]:
    client = httpx.Client(timeout=timeout)

    def send(entry: QueuedRequest) -> httpx.Response:
        return client.request(entry.method, entry.url, headers=entry.headers, content=entry.body)

    return send


class SyncWorker:
    def __init__(self, queue: RequestQueue,
                 broadcast: Optional[Callable[[str, dict], None]] = None,
                 send: Optional[Callable[[QueuedRequest], httpx.Response]] = None,
                 enabled: bool = SYNC_ENABLED):
        self.queue = queue
        self.broadcast = broadcast
        self.send = send or http_sender()
        self.enabled = enabled
        self._lock = threading.Lock()
        self._stop = threading.Event()

    # Échec d'enregistrement = chemin désactivé, jamais une erreur
    def register(self, tag: str = SYNC_TAG) -> bool:
        if not self.enabled:
            print("[sync-worker] background sync not supported, disabled", flush=True)
            return False
        try:
            self.queue.register_tag(tag)
        except (SQLAlchemyError, OSError) as e:
            print(f"[sync-worker] registration of '{tag}' failed, disabled: {e}", flush=True)
            return False
        print(f"[sync-worker] registered '{tag}'", flush=True)
        return True

    def on_sync(self, tag: str = SYNC_TAG) -> Optional[ReplayResult]:
        if not self.enabled:
            return None
        try:
            if not self.queue.is_registered(tag):
                print(f"[sync-worker] ignoring sync for unregistered tag '{tag}'", flush=True)
                return None
        except (SQLAlchemyError, OSError) as e:
            print(f"[sync-worker] sync '{tag}' skipped: {e}", flush=True)
            return None

        with self._lock:
            print(f"[sync-worker] sync '{tag}' started", flush=True)
            self._broadcast("SYNC_STARTED", {"tag": tag})
            try:
                result = self.queue.replay(self.send)
            except (SQLAlchemyError, OSError) as e:
                print(f"[sync-worker] sync '{tag}' failed: {e}", flush=True)
                result = ReplayResult(error=str(e))
            # succès ou épuisement : les clients sont toujours prévenus
            self._broadcast("SYNC_COMPLETED", {"tag": tag, **asdict(result)})
        return result

    def _broadcast(self, event_type: str, payload: dict) -> None:
        if self.broadcast is None:
            return
        try:
            self.broadcast(event_type, payload)
        except Exception as e:
            print(f"[sync-worker] broadcast {event_type} failed: {e}", flush=True)

    # Réveil périodique : rejoue s'il reste quelque chose en file
    def run_periodic(self, interval: float = PERIODIC_SYNC_SEC, tag: str = SYNC_TAG) -> None:
        while not self._stop.wait(interval):
            try:
                if self.queue.size() == 0:
                    continue
            except (SQLAlchemyError, OSError) as e:
                print(f"[sync-worker] periodic wake skipped: {e}", flush=True)
                continue
            self.on_sync(tag)

    def stop(self) -> None:
        self._stop.set()

    def on_push(self, data: dict) -> Notification:
        notification = Notification(
            title=data.get("title") or PUSH_DEFAULT_TITLE,
            body=data.get("body") or PUSH_DEFAULT_BODY,
            url=data.get("url") or PUSH_DEFAULT_URL,
        )
        print(f"[sync-worker] push -> notification '{notification.title}'", flush=True)
        self._broadcast("NotificationShown", asdict(notification))
        return notification

    # Focalise un client qui affiche déjà l'URL, sinon en ouvre un
    def on_notification_click(self, notification: Notification,
                              open_urls: Iterable[str]) -> Tuple[str, str]:
        url = notification.url
        if url in set(open_urls):
            return ("focus", url)
        return ("open", url)
