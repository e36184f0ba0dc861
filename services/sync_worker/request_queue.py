# ============================================================
# request_queue.py — File de requêtes persistante (plateforme)
# ------------------------------------------------------------
# Garde les requêtes de check-in échouées faute de réseau, avec
# une fenêtre de rétention bornée (24h) au-delà de laquelle elles
# sont jetées sans rejeu.
#
# Rejeu : du plus ancien au plus récent. 2xx -> l'entrée est
# retirée. Erreur réseau ou statut non-2xx -> l'entrée reste et
# le passage s'arrête (le réseau n'est visiblement pas revenu),
# le reste attend la prochaine occasion.
# ============================================================
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import httpx
from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, create_engine, select

from .config import SYNC_MAX_RETENTION_MIN, SYNC_QUEUE_NAME, SYNC_QUEUE_URL
from .models import QueuedRequest, SyncRegistration

# En-têtes recalculés par httpx au rejeu
SKIPPED_HEADERS = {"content-length", "host"}


@dataclass
class ReplayResult:
    replayed: int = 0
    failed: int = 0
    expired: int = 0
    remaining: int = 0
    error: Optional[str] = None


class RequestQueue:
    def __init__(self, name: str = SYNC_QUEUE_NAME, url: str = SYNC_QUEUE_URL,
                 max_retention_min: int = SYNC_MAX_RETENTION_MIN,
                 now: Callable[[], float] = time.time):
        self.name = name
        self.url = url
        self.max_retention_sec = max_retention_min * 60
        self.now = now
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    # Lève SQLAlchemyError / OSError si la base est inutilisable
    def open(self) -> Engine:
        if self._engine is not None:
            return self._engine
        with self._lock:
            if self._engine is None:
                engine = create_engine(self.url, poolclass=NullPool)
                SQLModel.metadata.create_all(
                    engine, tables=[QueuedRequest.__table__, SyncRegistration.__table__])
                self._engine = engine
        return self._engine

    def register_tag(self, tag: str) -> None:
        with Session(self.open()) as s:
            if s.get(SyncRegistration, tag) is None:
                s.add(SyncRegistration(tag=tag))
                s.commit()

    def is_registered(self, tag: str) -> bool:
        with Session(self.open()) as s:
            return s.get(SyncRegistration, tag) is not None

    def push(self, request: httpx.Request) -> int:
        entry = QueuedRequest(
            queue_name=self.name,
            method=request.method,
            url=str(request.url),
            headers={k: v for k, v in request.headers.items() if k.lower() not in SKIPPED_HEADERS},
            body=request.content.decode("utf-8"),
            timestamp=self.now(),
        )
        with Session(self.open()) as s:
            s.add(entry)
            s.commit()
            s.refresh(entry)
        print(f"[sync-queue] queued {entry.method} {entry.url} id={entry.id}", flush=True)
        return entry.id

    def entries(self) -> List[QueuedRequest]:
        with Session(self.open()) as s:
            stmt = select(QueuedRequest).where(QueuedRequest.queue_name == self.name).order_by(QueuedRequest.id)
            return list(s.exec(stmt).all())

    def size(self) -> int:
        with Session(self.open()) as s:
            stmt = select(func.count()).select_from(QueuedRequest).where(QueuedRequest.queue_name == self.name)
            return s.exec(stmt).one()

    def _delete(self, entry_id: int) -> None:
        with Session(self.open()) as s:
            entry = s.get(QueuedRequest, entry_id)
            if entry is not None:
                s.delete(entry)
                s.commit()

    def replay(self, send: Callable[[QueuedRequest], httpx.Response]) -> ReplayResult:
        result = ReplayResult()
        cutoff = self.now() - self.max_retention_sec
        pending = self.entries()
        for i, entry in enumerate(pending):
            if entry.timestamp < cutoff:
                self._delete(entry.id)
                result.expired += 1
                print(f"[sync-queue] id={entry.id} expired, dropped", flush=True)
                continue
            try:
                response = send(entry)
            except httpx.HTTPError as e:
                print(f"[sync-queue] id={entry.id} replay failed: {e}", flush=True)
                result.failed += 1
                result.remaining = len(pending) - i
                break
            if not response.is_success:
                print(f"[sync-queue] id={entry.id} replay rejected: {response.status_code}", flush=True)
                result.failed += 1
                result.remaining = len(pending) - i
                break
            self._delete(entry.id)
            result.replayed += 1
        print(f"[sync-queue] replay done: {result}", flush=True)
        return result
