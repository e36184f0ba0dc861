# ============================================================
# resync.py — Moteur de resynchronisation (drain de la file)
# ------------------------------------------------------------
# Au retour du réseau (ou sur demande), rejoue chaque enveloppe
# en attente contre le store distant :
#   - strictement en séquence, dans l'ordre de la file
#   - attempts incrémenté et persisté AVANT l'envoi : un crash en
#     plein envoi se voit au prochain passage
#   - succès -> suppression de l'enveloppe ; échec -> elle reste
#     pour le prochain drain, le lot continue
# Livraison "au moins une fois" : un crash entre l'écriture
# distante et la suppression locale produit un doublon accepté.
# Pas de plafond sur attempts (retry illimité).
# ============================================================
import threading
from datetime import date
from typing import Callable

from .config import CHECKINS_COLLECTION
from .models import PendingEnvelope
from .remote import SERVER_TIMESTAMP
from .submission import local_today


# Charge utile d'un renvoi : partition recalculée au moment du
# renvoi, marqueurs isResent / originalTimestamp / resendAttempts
def resend_payload(envelope: PendingEnvelope, attempts: int, day: date) -> dict:
    data = dict(envelope.data)
    return {
        **data,
        "startDate": day.isoformat(),
        "endDate": day.isoformat(),
        "clientCheckInTime": data.get("checkInTime"),
        "serverCheckInTime": SERVER_TIMESTAMP,
        "createdAt": SERVER_TIMESTAMP,
        "isResent": True,
        "originalTimestamp": envelope.timestamp,
        "resendAttempts": attempts,
    }


class ResyncEngine:
    def __init__(self, state, queue, remote, notifier,
                 collection: str = CHECKINS_COLLECTION,
                 today: Callable[[], date] = local_today):
        self.state = state
        self.queue = queue
        self.remote = remote
        self.notifier = notifier
        self.collection = collection
        self.today = today
        # deux drains (front online + drain de démarrage) ne se chevauchent pas
        self._lock = threading.Lock()

    def drain(self) -> int:
        if not self.state.online:
            return 0
        with self._lock:
            return self._drain()

    def _drain(self) -> int:
        pending = self.queue.list_all()
        if not pending:
            return 0
        total = len(pending)
        print(f"[resync] resending {total} pending check-in(s)", flush=True)
        self.notifier.info(f"Resending {total} pending check-in(s)")

        sent = 0
        for envelope in pending:
            if self._resend(envelope):
                sent += 1

        print(f"[resync] {sent}/{total} check-in(s) resent", flush=True)
        if sent == total:
            self.notifier.success(f"Resent {sent} check-in(s)")
        elif sent == 0:
            self.notifier.error(f"Could not resend {total} check-in(s)",
                                "They stay on this device and will be retried")
        else:
            self.notifier.warning(f"Resent {sent} of {total} check-in(s)",
                                  "The others will be retried")
        return sent

    def _resend(self, envelope: PendingEnvelope) -> bool:
        attempts = envelope.attempts + 1
        if not self.queue.update_attempts(envelope.id, attempts):
            print(f"[resync] id={envelope.id} skipped, attempts could not be recorded", flush=True)
            return False
        try:
            self.remote.add_record(self.collection, resend_payload(envelope, attempts, self.today()))
        except Exception as e:
            print(f"[resync] id={envelope.id} resend failed (attempt {attempts}): {e}", flush=True)
            return False
        if not self.queue.remove(envelope.id):
            print(f"[resync] id={envelope.id} sent but still queued, it will be sent again", flush=True)
        else:
            print(f"[resync] id={envelope.id} resent (attempt {attempts})", flush=True)
        return True
