# ============================================================
# local_queue.py — File locale durable des check-ins en attente
# ------------------------------------------------------------
# Stockage SQLite sur la borne des PendingEnvelope qui n'ont pas
# pu être envoyées au store distant. Survit aux redémarrages.
#
# Chaque opération ouvre sa propre Session et la ferme en sortie
# (bloc `with`), et le moteur n'utilise aucun pool (NullPool) :
# aucune connexion n'est gardée ouverte entre deux appels.
#
# Les primitives ne lèvent jamais : une panne de stockage devient
# False / [] / 0 et une ligne de log.
# ============================================================
import threading
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel, create_engine, select

from .config import QUEUE_URL, QUEUE_SCHEMA_VERSION
from .models import CheckInRecord, PendingEnvelope, QueueSchema


class StorageUnavailable(Exception):
    """Le stockage local est refusé ou inutilisable sur cet appareil."""


class LocalQueue:
    def __init__(self, url: str = QUEUE_URL, schema_version: int = QUEUE_SCHEMA_VERSION):
        self.url = url
        self.schema_version = schema_version
        self._engine: Optional[Engine] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------
    # initialize() — ouvre (et crée si besoin) la file
    # ------------------------------------------------------------
    # Idempotent et sûr en appels concurrents : le verrou garantit
    # qu'un seul appelant construit le moteur. Le schéma n'est créé
    # qu'une fois par appareil, contrôlé par la table queue_schema.
    # ------------------------------------------------------------
    def initialize(self) -> Engine:
        if self._engine is not None:
            return self._engine
        with self._lock:
            if self._engine is None:
                try:
                    engine = create_engine(self.url, poolclass=NullPool)
                    self._upgrade(engine)
                except (SQLAlchemyError, OSError) as e:
                    raise StorageUnavailable(f"cannot open {self.url}: {e}") from e
                self._engine = engine
                print(f"[queue] opened {self.url} (schema v{self.schema_version})", flush=True)
        return self._engine

    def _upgrade(self, engine: Engine) -> None:
        SQLModel.metadata.create_all(engine, tables=[QueueSchema.__table__])
        with Session(engine) as s:
            current = s.exec(select(func.max(QueueSchema.version))).one()
            if current is not None and current >= self.schema_version:
                return
            SQLModel.metadata.create_all(engine, tables=[PendingEnvelope.__table__])
            s.add(QueueSchema(version=self.schema_version))
            s.commit()
            print(f"[queue] schema upgraded {current} -> {self.schema_version}", flush=True)

    # Ajoute une enveloppe (attempts=0, horodatage courant)
    def enqueue(self, record: CheckInRecord) -> bool:
        envelope = PendingEnvelope(data=record.to_document())
        try:
            with Session(self.initialize()) as s:
                s.add(envelope)
                s.commit()
                s.refresh(envelope)
        except (StorageUnavailable, SQLAlchemyError) as e:
            print(f"[queue] enqueue failed: {e}", flush=True)
            return False
        print(f"[queue] stored pending check-in id={envelope.id} room={record.room}", flush=True)
        return True

    # Toutes les enveloppes, dans l'ordre d'insertion
    def list_all(self) -> List[PendingEnvelope]:
        try:
            with Session(self.initialize()) as s:
                return list(s.exec(select(PendingEnvelope).order_by(PendingEnvelope.id)).all())
        except (StorageUnavailable, SQLAlchemyError) as e:
            print(f"[queue] list failed: {e}", flush=True)
            return []

    def count(self) -> int:
        try:
            with Session(self.initialize()) as s:
                return s.exec(select(func.count()).select_from(PendingEnvelope)).one()
        except (StorageUnavailable, SQLAlchemyError) as e:
            print(f"[queue] count failed: {e}", flush=True)
            return 0

    # Un id déjà absent compte comme une suppression réussie
    def remove(self, envelope_id: int) -> bool:
        try:
            with Session(self.initialize()) as s:
                envelope = s.get(PendingEnvelope, envelope_id)
                if envelope is not None:
                    s.delete(envelope)
                    s.commit()
        except (StorageUnavailable, SQLAlchemyError) as e:
            print(f"[queue] remove id={envelope_id} failed: {e}", flush=True)
            return False
        print(f"[queue] removed id={envelope_id}", flush=True)
        return True

    # Ne réécrit que attempts ; id introuvable -> False sans écriture
    def update_attempts(self, envelope_id: int, attempts: int) -> bool:
        try:
            with Session(self.initialize()) as s:
                envelope = s.get(PendingEnvelope, envelope_id)
                if envelope is None:
                    print(f"[queue] id={envelope_id} not found, attempts not updated", flush=True)
                    return False
                envelope.attempts = attempts
                s.add(envelope)
                s.commit()
        except (StorageUnavailable, SQLAlchemyError) as e:
            print(f"[queue] update attempts id={envelope_id} failed: {e}", flush=True)
            return False
        return True
