# ============================================================
# models.py — Modèle Document (Records Service)
# ------------------------------------------------------------
# Store de documents minimal : chaque document appartient à une
# collection et garde ses champs libres dans une colonne JSON.
# ============================================================
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Document(SQLModel, table=True):
    __tablename__ = "documents"

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    collection: str = Field(index=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
