# ============================================================
# config.py — Configuration du service Kiosk
# ------------------------------------------------------------
# Toutes les constantes sont lues depuis l'environnement au
# chargement du module (même convention que DATABASE_URL /
# RABBITMQ_HOST dans les autres services).
# ============================================================
import os

# File locale durable (SQLite sur la borne)
QUEUE_URL = os.getenv("KIOSK_QUEUE_URL", "sqlite:///pending_checkins.db")
QUEUE_SCHEMA_VERSION = int(os.getenv("KIOSK_QUEUE_SCHEMA_VERSION", "2"))

# Store distant + collection des check-ins
RECORDS_URL = os.getenv("RECORDS_URL", "http://records:8010")
CHECKINS_COLLECTION = os.getenv("CHECKINS_COLLECTION", "checkins")

# "store" = appel direct au store de documents
# "http"  = POST /api/checkins via la couche d'interception background-sync
REMOTE_MODE = os.getenv("KIOSK_REMOTE_MODE", "store")
REMOTE_TIMEOUT_SEC = float(os.getenv("REMOTE_TIMEOUT_SEC", "5"))

# Délais du moniteur réseau (secondes)
RESYNC_SETTLE_DELAY_SEC = float(os.getenv("RESYNC_SETTLE_DELAY_SEC", "1.0"))
STARTUP_DRAIN_DELAY_SEC = float(os.getenv("STARTUP_DRAIN_DELAY_SEC", "2.0"))
PROBE_INTERVAL_SEC = float(os.getenv("PROBE_INTERVAL_SEC", "10"))

RABBITMQ_HOST = os.getenv("RABBITMQ_HOST", "rabbitmq")

# Fuseau utilisé pour la clé de partition startDate / endDate
LOCAL_TZ = os.getenv("LOCAL_TZ", "Asia/Tokyo")

TOAST_HISTORY = int(os.getenv("TOAST_HISTORY", "50"))

# Endpoint HTTP de check-in (mode "http")
CHECKIN_ENDPOINT_URL = os.getenv("CHECKIN_ENDPOINT_URL", f"{RECORDS_URL}/api/checkins")
