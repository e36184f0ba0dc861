# ============================================================
# publisher.py — Émission d'événements RabbitMQ (Kiosk)
# ------------------------------------------------------------
# Publie les notifications utilisateur (ToastShown) et les
# signaux de connectivité (ConnectivityRestored) sur l'échange
# "events" en mode fanout. Le sync worker et tout autre écouteur
# lié à l'échange reçoivent le message.
# ============================================================
import json

import pika

from .config import RABBITMQ_HOST


def publish_event(event_type: str, payload: dict):
    conn = pika.BlockingConnection(pika.ConnectionParameters(host=RABBITMQ_HOST))
    try:
        ch = conn.channel()
        # durable=True pour survivre aux redémarrages RabbitMQ
        ch.exchange_declare(exchange="events", exchange_type="fanout", durable=True)
        message = {"type": event_type, "payload": payload}
        ch.basic_publish(exchange="events", routing_key="", body=json.dumps(message))
        print(f"[event] {event_type} {payload}", flush=True)
    finally:
        conn.close()
