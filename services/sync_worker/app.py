# ============================================================
# app.py — Point d'entrée du Background Sync Worker
# ------------------------------------------------------------
# Processus indépendant de l'application kiosk :
#   - enregistre la tâche de sync à l'installation (démarrage)
#   - lance le consumer RabbitMQ et le réveil périodique
#   - expose l'état de la file et un déclenchement manuel
# ============================================================
import threading

from fastapi import FastAPI, HTTPException

from .consumer import start_consumer
from .publisher import publish_event
from .request_queue import RequestQueue
from .worker import SyncWorker

queue = RequestQueue()
worker = SyncWorker(queue, broadcast=publish_event)

app = FastAPI(title="Background Sync Worker")


@app.on_event("startup")
def startup():
    # capacité absente -> chemin désactivé, le kiosk reste fonctionnel
    if not worker.register():
        return
    threading.Thread(target=start_consumer, args=(worker,), daemon=True).start()
    threading.Thread(target=worker.run_periodic, daemon=True).start()


@app.on_event("shutdown")
def shutdown():
    worker.stop()


@app.get("/health")
def health():
    return {"ok": True, "enabled": worker.enabled}


@app.get("/v1/sync/queue")
def queue_status():
    if not worker.enabled:
        return {"enabled": False, "size": 0}
    return {"enabled": True, "name": queue.name, "size": queue.size()}


# Déclenchement manuel d'une occasion de sync
@app.post("/v1/sync/{tag}")
def trigger(tag: str):
    result = worker.on_sync(tag)
    if result is None:
        raise HTTPException(404, "no registered sync for this tag")
    return result
