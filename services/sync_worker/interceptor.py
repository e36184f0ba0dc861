# ============================================================
# interceptor.py — Interception réseau des POST de check-in
# ------------------------------------------------------------
# Transport httpx qui enveloppe le transport réel. Un POST vers
# /api/checkins qui échoue au niveau réseau est copié dans la
# file de la plateforme, une sync est demandée pour le tag,
# puis l'erreur est relancée à l'appelant
# (qui garde son propre repli). Sans file (capacité absente),
# le transport est transparent.
# ============================================================
import re
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from .config import SYNC_INTERCEPT_PATTERN, SYNC_TAG
from .request_queue import RequestQueue


class BackgroundSyncTransport(httpx.BaseTransport):
    def __init__(self, queue: Optional[RequestQueue], inner: Optional[httpx.BaseTransport] = None,
                 pattern: str = SYNC_INTERCEPT_PATTERN, tag: str = SYNC_TAG):
        self.queue = queue
        self.tag = tag
        self.inner = inner or httpx.HTTPTransport()
        self.pattern = re.compile(pattern)

    def _intercepts(self, request: httpx.Request) -> bool:
        return (self.queue is not None
                and request.method == "POST"
                and self.pattern.search(request.url.path) is not None)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if not self._intercepts(request):
            return self.inner.handle_request(request)
        request.read()
        try:
            return self.inner.handle_request(request)
        except httpx.TransportError:
            try:
                self.queue.push(request)
                # demande de sync liée à la mise en file
                self.queue.register_tag(self.tag)
            except (SQLAlchemyError, OSError) as e:
                print(f"[sync-intercept] could not queue {request.url}: {e}", flush=True)
            raise

    def close(self) -> None:
        self.inner.close()
