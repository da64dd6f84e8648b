"""Core controllog SDK: JSONL events and balanced postings."""

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

EVENTS_FILE = "events.jsonl"
POSTINGS_FILE = "postings.jsonl"

_state: Dict[str, Any] = {"project_id": None, "log_dir": None}
_lock = threading.Lock()


def init(project_id: str, log_dir: Path) -> None:
    """Set the default project and create the log directory."""
    log_dir = Path(log_dir) / "controllog"
    log_dir.mkdir(parents=True, exist_ok=True)
    _state["project_id"] = project_id
    _state["log_dir"] = log_dir


def new_id() -> str:
    return str(uuid.uuid4())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _log_dir() -> Path:
    if _state["log_dir"] is None:
        raise RuntimeError("controllog.init() must be called before emitting events")
    return _state["log_dir"]


def _write_jsonl(path: Path, data: Dict[str, Any]) -> None:
    with _lock:
        with open(path, "a") as f:
            f.write(json.dumps(data, default=str) + "\n")


def event(
    kind: str,
    task_id: Optional[str] = None,
    agent_id: Optional[str] = None,
    run_id: Optional[str] = None,
    project_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    postings: Optional[List[Dict[str, Any]]] = None,
    event_id: Optional[str] = None,
) -> str:
    """Write one event (and its postings) and return the event id."""
    event_id = event_id or new_id()
    log_dir = _log_dir()
    record = {
        "event_id": event_id,
        "event_time": _now(),
        "kind": kind,
        "project_id": project_id or _state["project_id"],
        "task_id": task_id,
        "agent_id": agent_id,
        "run_id": run_id,
        "payload_json": payload or {},
    }
    _write_jsonl(log_dir / EVENTS_FILE, record)
    for posting in postings or []:
        _write_jsonl(log_dir / POSTINGS_FILE, {"event_id": event_id, **posting})
    return event_id


def post(account_type: str, account_id: str, unit: str, delta: float, dims: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a single posting for `event(postings=...)`."""
    return {
        "posting_id": new_id(),
        "account_type": account_type,
        "account_id": account_id,
        "unit": unit,
        "delta_numeric": delta,
        "dims_json": dims or {},
    }
