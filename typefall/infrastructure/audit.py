"""Append-only audit log of score submissions.

Writes newline-delimited JSON entries to ``logs/audit.log`` (or AUDIT_LOG_FILE).
Thread-safe via a module-level lock.
"""
import json
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

_LOCK = threading.Lock()

ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_LOG_FILE = ROOT / "logs" / "audit.log"


def log_file() -> Path:
    configured = os.environ.get("AUDIT_LOG_FILE", "").strip()
    return Path(configured) if configured else DEFAULT_LOG_FILE


def log_event(action: str, player_id: str | None, payload: dict | None = None) -> None:
    path = log_file()
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action": action,
        "player_id": player_id,
        "payload": payload or {},
    }
    # One JSON line per event; the lock keeps concurrent requests from
    # interleaving partial lines.
    with _LOCK:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")
