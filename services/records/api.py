# ============================================================
# Records API Router
# ------------------------------------------------------------
# Le store de documents distant utilisé par les bornes :
#   - ajout d'un document dans une collection
#   - requête par égalité de champs
#   - endpoint HTTP de check-in (/api/checkins), la cible du
#     chemin intercepté par le Background Sync Worker
# ============================================================
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from .config import CHECKINS_COLLECTION, DATABASE_URL, SERVER_TIMESTAMP
from .repository import DocumentRepository

# Moteur SQLAlchemy/SQLModel + routeur FastAPI
engine = create_engine(DATABASE_URL, pool_pre_ping=True)
router = APIRouter()


# Dépendance FastAPI : fournit une Session DB par requête, auto-close
def get_session():
    with Session(engine) as s:
        yield s


@router.get("/health")
def health():
    return {"ok": True}


# ------------------------------------------------------------
# POST /v1/collections/{collection}/documents — Ajouter
# ------------------------------------------------------------
@router.post("/v1/collections/{collection}/documents", status_code=201)
def add_document(collection: str, payload: dict, s: Session = Depends(get_session)):
    doc = DocumentRepository(s).add(collection, payload)
    print(f"[records] {collection} += {doc.id}", flush=True)
    return {"id": doc.id}


# ------------------------------------------------------------
# GET /v1/collections/{collection}/documents?champ=valeur
# ------------------------------------------------------------
@router.get("/v1/collections/{collection}/documents")
def query_documents(collection: str, request: Request, s: Session = Depends(get_session)):
    docs = DocumentRepository(s).query(collection, dict(request.query_params))
    return [{"id": d.id, **d.data} for d in docs]


# ------------------------------------------------------------
# POST /api/checkins — Endpoint HTTP de check-in
# ------------------------------------------------------------
# Le statut décide si la file de la plateforme garde la requête :
# 200 -> retirée, 500 -> gardée pour le prochain rejeu
# ------------------------------------------------------------
@router.post("/api/checkins")
def post_checkin(payload: dict, s: Session = Depends(get_session)):
    data = {**payload, "serverCheckInTime": SERVER_TIMESTAMP, "createdAt": SERVER_TIMESTAMP}
    try:
        doc = DocumentRepository(s).add(CHECKINS_COLLECTION, data)
    except SQLAlchemyError as e:
        s.rollback()
        print(f"[records] check-in save failed: {e}", flush=True)
        return JSONResponse({"success": False, "error": "could not save check-in"}, status_code=500)
    print(f"[records] check-in {doc.id} room={payload.get('room')}", flush=True)
    return {"success": True, "id": doc.id}
