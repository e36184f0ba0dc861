# ============================================================
# models.py — Tables du Background Sync Worker
# ------------------------------------------------------------
#   1️. QueuedRequest : requête HTTP échouée, gardée pour rejeu
#   2️. SyncRegistration : tâches de sync enregistrées (par tag)
# ============================================================
import time
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class QueuedRequest(SQLModel, table=True):
    __tablename__ = "queued_requests"

    id: Optional[int] = Field(default=None, primary_key=True)
    queue_name: str = Field(index=True)
    method: str
    url: str
    headers: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    body: str = ""
    # secondes epoch (UTC), sert à la fenêtre de rétention
    timestamp: float = Field(default_factory=time.time)


class SyncRegistration(SQLModel, table=True):
    __tablename__ = "sync_registrations"

    tag: str = Field(primary_key=True)
    registered_at: float = Field(default_factory=time.time)
