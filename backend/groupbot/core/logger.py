from __future__ import annotations

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

log = logging.getLogger("groupbot")


class SessionLogger:
    """Append-only JSONL trail for one user, one record per line."""

    def __init__(self, session_id: str, base_dir: str | os.PathLike | None = None) -> None:
        self.session_id = session_id
        logs_dir = base_dir or os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "..", "logs"
        )
        self.logs_dir = os.path.abspath(logs_dir)
        Path(self.logs_dir).mkdir(parents=True, exist_ok=True)
        self.file_path = os.path.join(self.logs_dir, f"session_{self.session_id}.jsonl")
        self._lock = threading.Lock()

    def write(self, event_type: str, payload: Dict[str, Any]) -> None:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
            "session_id": self.session_id,
            "event": event_type,
            "payload": payload,
        }
        line = json.dumps(record, ensure_ascii=False, default=str) + "\n"
        with self._lock, open(self.file_path, "a", encoding="utf-8") as f:
            f.write(line)

    def step(self, name: str, input_data: Dict[str, Any], output_data: Dict[str, Any]) -> None:
        self.write(
            "agent_step",
            {"name": name, "input": input_data, "output": output_data},
        )

    def user_message(self, message: str) -> None:
        self.write("user_message", {"message": message})

    def assistant_message(self, message: str) -> None:
        self.write("assistant_message", {"message": message})

    def slots(self, before: Dict[str, Any] | None, after: Dict[str, Any] | None) -> None:
        self.write("slots", {"from": before, "to": after})

    def sent(self, action: Dict[str, Any], message_id: str | None = None) -> None:
        self.write("sent", {"action": action, "message_id": message_id})

    def error(self, kind: str, message: str, **kwargs: Any) -> None:
        log.error("%s for user %s: %s", kind, self.session_id, message)
        self.write("error", {"kind": kind, "message": message, **kwargs})

    def info(self, message: str, **kwargs: Any) -> None:
        payload = {"message": message, **kwargs}
        self.write("info", payload)
