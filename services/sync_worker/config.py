# ============================================================
# config.py — Configuration du Background Sync Worker
# ============================================================
import os

# File de requêtes gérée par la "plateforme" (distincte de la
# file locale du kiosk)
SYNC_QUEUE_URL = os.getenv("SYNC_QUEUE_URL", "sqlite:///background_sync.db")
SYNC_QUEUE_NAME = "checkins-queue"
SYNC_TAG = "sync-checkins"
SYNC_MAX_RETENTION_MIN = 24 * 60  # 24 heures

# Seuls les POST vers ce chemin sont interceptés
SYNC_INTERCEPT_PATTERN = r"/api/checkins"

# 0 = plateforme sans capacité background-sync
SYNC_ENABLED = os.getenv("SYNC_ENABLED", "1") == "1"
PERIODIC_SYNC_SEC = float(os.getenv("PERIODIC_SYNC_SEC", "60"))
REPLAY_TIMEOUT_SEC = float(os.getenv("REPLAY_TIMEOUT_SEC", "10"))

CHECKIN_ENDPOINT_URL = os.getenv("CHECKIN_ENDPOINT_URL", "http://records:8010/api/checkins")
RABBITMQ_HOST = os.getenv("RABBITMQ_HOST", "rabbitmq")

# Valeurs par défaut des notifications push
PUSH_DEFAULT_TITLE = os.getenv("PUSH_DEFAULT_TITLE", "Coworking Check-in")
PUSH_DEFAULT_BODY = os.getenv("PUSH_DEFAULT_BODY", "Check-in data has been updated")
PUSH_DEFAULT_URL = os.getenv("PUSH_DEFAULT_URL", "/")
PUSH_ICON = "/icons/icon.svg"
