# ============================================================
# Sync Worker — RabbitMQ Consumer
# ------------------------------------------------------------
# Écoute l'échange "events" :
#   - ConnectivityRestored -> occasion de sync (rejeu de la file)
#   - PushReceived -> notification push
#   - NotificationClicked -> focus / ouverture du client
# Les autres types (dont nos propres diffusions) sont ignorés.
# ============================================================
import json
import time

import pika

from .config import RABBITMQ_HOST, SYNC_TAG
from .worker import Notification, SyncWorker


def make_on_message(worker: SyncWorker):
    # Callback exécuté à chaque message reçu depuis RabbitMQ
    def on_message(ch, method, properties, body):
        try:
            msg = json.loads(body)
        except Exception as e:
            print(f"[sync-consumer] bad payload: {e}", flush=True)
            return

        etype = msg.get("type")
        payload = msg.get("payload", {})

        if etype == "ConnectivityRestored":
            worker.on_sync(payload.get("tag", SYNC_TAG))
        elif etype == "PushReceived":
            worker.on_push(payload)
        elif etype == "NotificationClicked":
            try:
                notification = Notification(**payload["notification"])
            except (KeyError, TypeError) as e:
                print(f"[sync-consumer] bad notification click: {e!r}", flush=True)
                return
            action, url = worker.on_notification_click(notification, payload.get("openUrls", []))
            print(f"[sync-consumer] notification click -> {action} {url}", flush=True)

    return on_message


#  Boucle de connexion + consommation RabbitMQ
def start_consumer(worker: SyncWorker):
    attempt = 0
    while True:
        try:
            print(f"[sync-consumer] connecting to rabbitmq at {RABBITMQ_HOST}...", flush=True)
            conn = pika.BlockingConnection(pika.ConnectionParameters(host=RABBITMQ_HOST, heartbeat=60))
            ch = conn.channel()
            ch.exchange_declare(exchange="events", exchange_type="fanout", durable=True)
            q = ch.queue_declare(queue="", exclusive=True).method.queue
            ch.queue_bind(exchange="events", queue=q)
            print(f"[sync-consumer] bound to 'events' queue='{q}'. waiting...", flush=True)
            ch.basic_consume(queue=q, on_message_callback=make_on_message(worker), auto_ack=True)
            attempt = 0
            ch.start_consuming()
        except Exception as e:
            attempt += 1
            wait = min(5 * attempt, 30)
            print(f"[sync-consumer] connection error: {e} — retrying in {wait}s", flush=True)
            time.sleep(wait)
