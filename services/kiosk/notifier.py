# ============================================================
# notifier.py — Notifications utilisateur (toasts)
# ------------------------------------------------------------
# Garde un historique borné des toasts pour l'UI de la borne et
# publie chaque toast (événement ToastShown). Si le broker est
# injoignable (typiquement hors ligne), on logue et on continue :
# un toast perdu ne doit jamais casser une check-in.
# ============================================================
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Callable, List, Optional

from .config import TOAST_HISTORY
from .models import utc_now_iso

SUCCESS = "success"
INFO = "info"
WARNING = "warning"
ERROR = "error"


@dataclass
class Toast:
    level: str
    message: str
    description: str = ""
    created_at: str = field(default_factory=utc_now_iso)


class Notifier:
    def __init__(self, publish: Optional[Callable[[str, dict], None]] = None,
                 history: int = TOAST_HISTORY):
        self.publish = publish
        self._toasts = deque(maxlen=history)
        self._lock = threading.Lock()

    def show(self, level: str, message: str, description: str = "") -> Toast:
        toast = Toast(level=level, message=message, description=description)
        with self._lock:
            self._toasts.append(toast)
        print(f"[toast] {level}: {message} {description}".rstrip(), flush=True)
        if self.publish is not None:
            try:
                self.publish("ToastShown", asdict(toast))
            except Exception as e:
                print(f"[toast] publish failed: {e}", flush=True)
        return toast

    def success(self, message: str, description: str = "") -> Toast:
        return self.show(SUCCESS, message, description)

    def info(self, message: str, description: str = "") -> Toast:
        return self.show(INFO, message, description)

    def warning(self, message: str, description: str = "") -> Toast:
        return self.show(WARNING, message, description)

    def error(self, message: str, description: str = "") -> Toast:
        return self.show(ERROR, message, description)

    def recent(self) -> List[Toast]:
        with self._lock:
            return list(self._toasts)
