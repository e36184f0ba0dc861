# ============================================================
# Kiosk API Router
# ------------------------------------------------------------
# Surface HTTP de la borne, utilisée par l'UI :
#   - soumission d'une check-in (envoi direct ou mise en file)
#   - état de la file locale + resync manuel
#   - connectivité (lecture + hook des signaux système)
#   - toasts récents, réservations déjà check-in, saisie manuelle
# ============================================================
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import SQLModel

from .admin import checked_in_reservation_ids, save_manual_checkin
from .kiosk import Kiosk, get_kiosk
from .models import CheckInRecord
from .remote import RemoteWriteError
from .submission import Outcome

router = APIRouter()


class ManualCheckIn(SQLModel):
    record: CheckInRecord
    checkin_date: date


# ------------------------------------------------------------
# POST /v1/kiosk/checkins — Soumettre une check-in
# ------------------------------------------------------------
# 201 "sent" (store distant) ou "queued" (gardée sur la borne) ;
# 500 si même la file locale a échoué : rien n'est enregistré
# ------------------------------------------------------------
@router.post("/v1/kiosk/checkins", status_code=201)
def submit_checkin(record: CheckInRecord, k: Kiosk = Depends(get_kiosk)):
    outcome = k.pipeline.submit_with_outcome(record)
    if outcome is Outcome.FAILED:
        raise HTTPException(500, "check-in could not be recorded")
    return {"status": outcome.value}


@router.get("/v1/kiosk/pending")
def pending(k: Kiosk = Depends(get_kiosk)):
    items = k.queue.list_all()
    return {"count": len(items), "items": [e.model_dump() for e in items]}


@router.post("/v1/kiosk/resync")
def resync(k: Kiosk = Depends(get_kiosk)):
    return {"resent": k.resync.drain()}


@router.get("/v1/kiosk/connectivity")
def connectivity(k: Kiosk = Depends(get_kiosk)):
    return {"online": k.state.online}


# Hook pour les dispatchers réseau du système
@router.post("/v1/kiosk/connectivity")
def connectivity_signal(online: bool, k: Kiosk = Depends(get_kiosk)):
    changed = k.monitor.signal(online)
    return {"online": k.state.online, "changed": changed}


@router.get("/v1/kiosk/toasts")
def toasts(k: Kiosk = Depends(get_kiosk)):
    return k.notifier.recent()


@router.get("/v1/kiosk/reservations/checked-in")
def checked_in(day: Optional[date] = None, k: Kiosk = Depends(get_kiosk)):
    return checked_in_reservation_ids(k.state, k.store, k.collection, day or k.pipeline.today())


@router.post("/v1/kiosk/manual-checkins", status_code=201)
def manual_checkin(body: ManualCheckIn, k: Kiosk = Depends(get_kiosk)):
    try:
        doc_id = save_manual_checkin(k.store, k.collection, body.record, body.checkin_date)
    except RemoteWriteError as e:
        raise HTTPException(502, str(e))
    return {"id": doc_id}
