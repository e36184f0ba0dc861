# ============================================================
# models.py — Modèles de données SQLModel (Kiosk Service)
# ------------------------------------------------------------
#   1️. CheckInRecord : la check-in saisie sur la borne (non table)
#   2️. PendingEnvelope : enveloppe durable dans la file locale
#   3️. QueueSchema : version du schéma de la file locale
# ============================================================
import re
from datetime import datetime, timezone
from typing import Optional

from pydantic import field_validator
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

# Correspondance champ Python -> clé du document distant
DOCUMENT_KEYS = {
    "room": "room",
    "start_time": "startTime",
    "end_time": "endTime",
    "count": "count",
    "purpose": "purpose",
    "age_group": "ageGroup",
    "check_in_time": "checkInTime",
    "reservation_id": "reservationId",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ------------------------------------------------------------
# CheckInRecord
# ------------------------------------------------------------
# Données métier d'une check-in, validées à la soumission :
#  - count >= 1
#  - room / horaires / purpose / age_group obligatoires
#  - reservation_id à None pour un walk-in
# ------------------------------------------------------------
class CheckInRecord(SQLModel):
    room: str = Field(min_length=1)
    start_time: str
    end_time: str
    count: int = Field(ge=1)
    purpose: str = Field(min_length=1)
    age_group: str = Field(min_length=1)
    check_in_time: str = Field(default_factory=utc_now_iso)
    reservation_id: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def wall_clock(cls, v: str) -> str:
        if not HHMM.match(v):
            raise ValueError("expected HH:MM")
        return v

    def to_document(self) -> dict:
        return {key: getattr(self, name) for name, key in DOCUMENT_KEYS.items()}


# ------------------------------------------------------------
# PendingEnvelope
# ------------------------------------------------------------
# Créée uniquement par le pipeline de soumission quand l'envoi
# direct est impossible. id auto-incrémenté par SQLite (jamais
# réutilisé grâce à AUTOINCREMENT), attempts incrémenté par le
# moteur de resync AVANT chaque renvoi.
# ------------------------------------------------------------
class PendingEnvelope(SQLModel, table=True):
    __tablename__ = "pending_checkins"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    data: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    timestamp: str = Field(default_factory=utc_now_iso)
    attempts: int = 0


class QueueSchema(SQLModel, table=True):
    __tablename__ = "queue_schema"

    id: Optional[int] = Field(default=None, primary_key=True)
    version: int
    upgraded_at: str = Field(default_factory=utc_now_iso)
