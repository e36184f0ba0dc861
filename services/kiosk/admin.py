# ============================================================
# admin.py — Opérations hors chemin critique
# ------------------------------------------------------------
#   - checked_in_reservation_ids : réservations déjà check-in
#     aujourd'hui (pour masquer ces réservations dans l'UI)
#   - save_manual_checkin : saisie manuelle par un administrateur,
#     sans repli local (l'administrateur réessaie à la main)
# ============================================================
from datetime import date
from typing import List

from .models import CheckInRecord
from .remote import RemoteReadError
from .submission import submission_payload


def checked_in_reservation_ids(state, remote, collection: str, day: date) -> List[str]:
    if not state.online:
        return []
    try:
        docs = remote.query(collection, startDate=day.isoformat())
    except RemoteReadError as e:
        print(f"[admin] reservation lookup failed: {e}", flush=True)
        return []
    return [d["reservationId"] for d in docs if d.get("reservationId")]


# Lève RemoteWriteError en cas d'échec
def save_manual_checkin(remote, collection: str, record: CheckInRecord, checkin_date: date) -> str:
    payload = {**submission_payload(record, checkin_date), "isManualEntry": True}
    doc_id = remote.add_record(collection, payload)
    print(f"[admin] manual check-in saved id={doc_id} date={checkin_date}", flush=True)
    return doc_id
