# ============================================================
# submission.py — Pipeline de soumission d'une check-in
# ------------------------------------------------------------
# Pour UNE check-in :
#   1️. Hors ligne -> directement dans la file locale
#   2️. En ligne -> une écriture distante ; en cas d'échec
#      (réseau, rejet, timeout) -> même repli vers la file locale
#   3️. Si la file locale échoue aussi -> échec terminal, remonté
#      à l'UI (la check-in n'est enregistrée nulle part)
# Le test online/offline n'est qu'un raccourci : un drapeau
# "online" périmé est rattrapé par l'échec de l'appel distant.
# Aucun retry ici, c'est le travail du moteur de resync.
# ============================================================
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from .config import CHECKINS_COLLECTION, LOCAL_TZ
from .models import CheckInRecord
from .remote import SERVER_TIMESTAMP


class Outcome(str, Enum):
    SENT = "sent"
    QUEUED = "queued"
    FAILED = "failed"


def local_today() -> date:
    return datetime.now(ZoneInfo(LOCAL_TZ)).date()


# Champs dérivés communs : partition par date de soumission,
# horodatage client conservé, horodatages serveur
def submission_payload(record: CheckInRecord, day: date) -> dict:
    return {
        **record.to_document(),
        "startDate": day.isoformat(),
        "endDate": day.isoformat(),
        "clientCheckInTime": record.check_in_time,
        "serverCheckInTime": SERVER_TIMESTAMP,
        "createdAt": SERVER_TIMESTAMP,
    }


class SubmissionPipeline:
    def __init__(self, state, queue, remote, notifier,
                 collection: str = CHECKINS_COLLECTION,
                 today: Callable[[], date] = local_today):
        self.state = state
        self.queue = queue
        self.remote = remote
        self.notifier = notifier
        self.collection = collection
        self.today = today

    def submit(self, record: CheckInRecord) -> bool:
        return self.submit_with_outcome(record) is not Outcome.FAILED

    def submit_with_outcome(self, record: CheckInRecord) -> Outcome:
        if self.state.online:
            try:
                doc_id = self.remote.add_record(self.collection, submission_payload(record, self.today()))
                print(f"[submit] sent room={record.room} id={doc_id}", flush=True)
                return Outcome.SENT
            # toute panne distante mène au même repli local
            except Exception as e:
                print(f"[submit] remote write failed, falling back to local queue: {e}", flush=True)
        return self._defer(record)

    def _defer(self, record: CheckInRecord) -> Outcome:
        if self.queue.enqueue(record):
            self.notifier.success("Check-in saved on this device",
                                  "It will be sent when the network is back")
            return Outcome.QUEUED
        print(f"[submit] local queue failed, check-in for room={record.room} NOT recorded", flush=True)
        self.notifier.error("Check-in could not be recorded",
                            "Please ask a staff member for help")
        return Outcome.FAILED
