# ============================================================
# Kiosk Service — RabbitMQ Consumer
# ------------------------------------------------------------
# Reçoit les diffusions du Background Sync Worker :
#   - SYNC_STARTED -> toast d'info
#   - SYNC_COMPLETED -> toast selon le résultat du rejeu
# Le worker et la borne ne partagent rien d'autre que ces
# messages.
# ============================================================
import json
import time

import pika

from .config import RABBITMQ_HOST


def make_on_message(notifier):
    # Callback exécuté à chaque message reçu depuis RabbitMQ
    def on_message(ch, method, properties, body):
        try:
            msg = json.loads(body)
        except Exception as e:
            print(f"[consumer] bad payload: {e}", flush=True)
            return

        etype = msg.get("type")
        payload = msg.get("payload", {})

        if etype == "SYNC_STARTED":
            notifier.info("Background sync started")
        elif etype == "SYNC_COMPLETED":
            replayed = payload.get("replayed", 0)
            if payload.get("error") or payload.get("failed"):
                notifier.warning("Background sync incomplete",
                                 f"{replayed} request(s) replayed, the rest will be retried")
            elif replayed:
                notifier.success("Background sync completed", f"{replayed} request(s) replayed")

    return on_message


#  Boucle de connexion + consommation RabbitMQ
def start_consumer(notifier):
    attempt = 0
    while True:
        try:
            print(f"[consumer] connecting to rabbitmq at {RABBITMQ_HOST}...", flush=True)
            conn = pika.BlockingConnection(pika.ConnectionParameters(host=RABBITMQ_HOST, heartbeat=60))
            ch = conn.channel()
            ch.exchange_declare(exchange="events", exchange_type="fanout", durable=True)
            q = ch.queue_declare(queue="", exclusive=True).method.queue
            ch.queue_bind(exchange="events", queue=q)
            print(f"[consumer] bound to exchange 'events' queue='{q}'. waiting for messages...", flush=True)
            ch.basic_consume(queue=q, on_message_callback=make_on_message(notifier), auto_ack=True)
            attempt = 0
            ch.start_consuming()
        except Exception as e:
            attempt += 1
            wait = min(5 * attempt, 30)
            print(f"[consumer] connection error: {e} — retrying in {wait}s", flush=True)
            time.sleep(wait)
