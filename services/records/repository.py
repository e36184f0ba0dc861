# ============================================================
# repository.py — Accès aux documents
# ------------------------------------------------------------
# Design pattern "Repository" sur la table Document : ajout
# (avec résolution des horodatages serveur) et requête par
# égalité de champs. Utilisé par l'API REST et /api/checkins.
# ============================================================
from datetime import datetime, timezone
from typing import List

from sqlmodel import Session, select

from .config import SERVER_TIMESTAMP
from .models import Document

# Champs de partition des check-ins
SQL_FILTERED_KEYS = ("startDate",)


def resolve_server_timestamps(payload: dict, now: datetime) -> dict:
    stamp = now.isoformat()
    return {k: (stamp if v == SERVER_TIMESTAMP else v) for k, v in payload.items()}


class DocumentRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, collection: str, payload: dict) -> Document:
        now = datetime.now(timezone.utc)
        doc = Document(collection=collection, data=resolve_server_timestamps(payload, now), created_at=now)
        self.session.add(doc)
        self.session.commit()
        self.session.refresh(doc)
        return doc

    # Les clés de partition (toujours texte) sont filtrées en SQL ;
    # le reste est comparé côté Python sur la forme texte de la
    # valeur stockée, les valeurs de requête arrivant en chaînes
    def query(self, collection: str, equals: dict) -> List[Document]:
        stmt = select(Document).where(Document.collection == collection)
        for key in SQL_FILTERED_KEYS:
            if key in equals:
                stmt = stmt.where(Document.data[key].as_string() == equals[key])
        rows = self.session.exec(stmt.order_by(Document.created_at)).all()
        return [d for d in rows if all(_as_text(d.data.get(k)) == v for k, v in equals.items())]


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
