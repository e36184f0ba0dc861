"""Shared pytest fixtures."""
import os

# Le module api du service Records crée son moteur à l'import
os.environ.setdefault("DATABASE_URL", "sqlite://")

from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from services.kiosk.local_queue import LocalQueue
from services.kiosk.models import CheckInRecord
from services.kiosk.network import Connectivity, ConnectivityState
from services.kiosk.notifier import Notifier
from services.kiosk.remote import RemoteWriteError
from services.records.api import get_session
from services.records.app import app as records_app
from services.records.models import Document


class FakeRemote:
    """Store distant en mémoire ; fail_when(payload) simule une panne."""

    def __init__(self, fail_when: Optional[Callable[[dict], bool]] = None):
        self.records: List[Tuple[str, dict]] = []
        self.calls = 0
        self.fail_when = fail_when
        self.before_write: Optional[Callable[[dict], None]] = None

    def add_record(self, collection: str, payload: dict) -> str:
        self.calls += 1
        if self.before_write is not None:
            self.before_write(payload)
        if self.fail_when is not None and self.fail_when(payload):
            raise RemoteWriteError(collection, ConnectionError("network is unreachable"))
        self.records.append((collection, payload))
        return f"doc{len(self.records)}"

    def query(self, collection: str, **equals) -> List[dict]:
        return [p for c, p in self.records
                if c == collection and all(str(p.get(k)) == v for k, v in equals.items())]

    def ping(self) -> bool:
        return True


class Scheduler:
    """Remplace threading.Timer : on garde (délai, fn) et on exécute à la main."""

    def __init__(self):
        self.calls: List[Tuple[float, Callable[[], None]]] = []

    def __call__(self, delay: float, fn: Callable[[], None]) -> None:
        self.calls.append((delay, fn))

    def run_all(self) -> None:
        calls, self.calls = self.calls, []
        for _, fn in calls:
            fn()


@pytest.fixture
def record() -> CheckInRecord:
    return CheckInRecord(
        room="private4",
        start_time="10:00",
        end_time="12:00",
        count=2,
        purpose="meeting",
        age_group="thirties",
        check_in_time="2023-05-01T10:00:00",
        reservation_id=None,
    )


@pytest.fixture
def queue(tmp_path: Path) -> LocalQueue:
    return LocalQueue(f"sqlite:///{tmp_path / 'pending.db'}")


@pytest.fixture
def broken_queue(tmp_path: Path) -> LocalQueue:
    """Le fichier ne peut pas être créé : le dossier parent n'existe pas."""
    return LocalQueue(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'pending.db'}")


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture
def online() -> ConnectivityState:
    return ConnectivityState(Connectivity.ONLINE)


@pytest.fixture
def offline() -> ConnectivityState:
    return ConnectivityState(Connectivity.OFFLINE)


@pytest.fixture
def scheduler() -> Scheduler:
    return Scheduler()


@pytest.fixture
def records_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine, tables=[Document.__table__])
    return engine


@pytest.fixture
def records_client(records_engine):
    def override():
        with Session(records_engine) as s:
            yield s

    records_app.dependency_overrides[get_session] = override
    yield TestClient(records_app)
    records_app.dependency_overrides.clear()


@pytest.fixture
def failing_remote() -> FakeRemote:
    return FakeRemote(fail_when=lambda payload: True)


@pytest.fixture
def make_remote() -> Callable[..., FakeRemote]:
    return FakeRemote
