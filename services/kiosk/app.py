# ============================================================
# app.py — Point d'entrée du service Kiosk
# ------------------------------------------------------------
#   - Ouvre la file locale (création du schéma si besoin)
#   - Démarre le moniteur réseau (sonde + drain de démarrage)
#   - Lance le consumer RabbitMQ des diffusions du sync worker
# ============================================================
import threading

from fastapi import FastAPI

from .api import router
from .consumer import start_consumer
from .kiosk import get_kiosk
from .local_queue import StorageUnavailable

app = FastAPI(title="Kiosk Service")


@app.on_event("startup")
def start():
    kiosk = get_kiosk()
    try:
        kiosk.queue.initialize()
    except StorageUnavailable as e:
        # la borne tourne quand même : chaque soumission hors ligne échouera
        print(f"[kiosk] local queue unavailable: {e}", flush=True)
    kiosk.monitor.start()
    threading.Thread(target=start_consumer, args=(kiosk.notifier,), daemon=True).start()


@app.on_event("shutdown")
def shutdown():
    get_kiosk().monitor.stop()


app.include_router(router)
