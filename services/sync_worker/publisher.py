# ============================================================
# publisher.py — Diffusion vers les clients au premier plan
# ------------------------------------------------------------
# Le worker ne partage aucune mémoire avec le kiosk : il parle
# uniquement par messages sur l'échange fanout "events"
# (SYNC_STARTED, SYNC_COMPLETED, NotificationShown, ...).
# ============================================================
import json

import pika

from .config import RABBITMQ_HOST


def publish_event(event_type: str, payload: dict):
    conn = pika.BlockingConnection(pika.ConnectionParameters(RABBITMQ_HOST, heartbeat=60))
    try:
        ch = conn.channel()
        ch.exchange_declare(exchange="events", exchange_type="fanout", durable=True)
        ch.basic_publish(exchange="events", routing_key="",
                         body=json.dumps({"type": event_type, "payload": payload}))
        print(f"[event] {event_type} {payload}", flush=True)
    finally:
        conn.close()
