# ============================================================
# remote.py — Clients du store distant (HTTP via httpx)
# ------------------------------------------------------------
# Deux écrivains interchangeables exposant add_record() :
#   - DocumentStoreClient : appel direct au store de documents
#   - CheckinEndpointClient : POST /api/checkins, transport
#     intercepté par la couche background-sync
# Toute erreur réseau / timeout / statut non-2xx devient une
# RemoteWriteError (ou RemoteReadError pour les lectures).
# ============================================================
from typing import List, Optional

import httpx

from .config import RECORDS_URL, REMOTE_TIMEOUT_SEC

# Remplacé par l'heure du serveur au moment de l'écriture
SERVER_TIMESTAMP = "__server_timestamp__"


class RemoteWriteError(Exception):
    def __init__(self, collection: str, cause: Exception):
        super().__init__(f"write to '{collection}' failed: {cause}")
        self.collection = collection
        self.cause = cause


class RemoteReadError(Exception):
    def __init__(self, collection: str, cause: Exception):
        super().__init__(f"read from '{collection}' failed: {cause}")
        self.collection = collection
        self.cause = cause


class DocumentStoreClient:
    def __init__(self, base_url: str = RECORDS_URL, timeout: float = REMOTE_TIMEOUT_SEC,
                 transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def add_record(self, collection: str, payload: dict) -> str:
        try:
            r = self.client.post(f"/v1/collections/{collection}/documents", json=payload)
            r.raise_for_status()
            return r.json()["id"]
        except (httpx.HTTPError, ValueError, KeyError) as e:
            raise RemoteWriteError(collection, e) from e

    # Requête par égalité de champs : query("checkins", startDate="2024-05-01")
    def query(self, collection: str, **equals) -> List[dict]:
        try:
            r = self.client.get(f"/v1/collections/{collection}/documents", params=equals)
            r.raise_for_status()
            return r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteReadError(collection, e) from e

    # Sonde de connectivité utilisée par le moniteur réseau
    def ping(self) -> bool:
        try:
            return self.client.get("/health").status_code == 200
        except httpx.HTTPError:
            return False

    def close(self) -> None:
        self.client.close()


# ------------------------------------------------------------
# CheckinEndpointClient
# ------------------------------------------------------------
# Passe par l'endpoint HTTP de check-in. Le transport fourni est
# en général BackgroundSyncTransport : si la requête échoue faute
# de réseau, elle est AUSSI mise dans la file de la plateforme.
# L'endpoint écrit toujours dans la collection des check-ins.
# ------------------------------------------------------------
class CheckinEndpointClient:
    def __init__(self, endpoint_url: str, timeout: float = REMOTE_TIMEOUT_SEC,
                 transport: Optional[httpx.BaseTransport] = None):
        self.endpoint_url = endpoint_url
        self.client = httpx.Client(timeout=timeout, transport=transport)

    def add_record(self, collection: str, payload: dict) -> str:
        try:
            r = self.client.post(self.endpoint_url, json=payload)
            r.raise_for_status()
            body = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise RemoteWriteError(collection, e) from e
        if not body.get("success"):
            raise RemoteWriteError(collection, RuntimeError(body.get("error", "rejected")))
        return body.get("id", "")

    def close(self) -> None:
        self.client.close()
