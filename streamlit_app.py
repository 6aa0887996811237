from __future__ import annotations

import glob
import json
import os
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

import streamlit as st

EVENTS = ["user_message", "assistant_message", "agent_step", "slots", "sent", "error", "info"]


def get_logs_dir() -> str:
    # Allow override via env; default to backend/logs relative to this file
    env_dir = os.getenv("LOGS_DIR")
    if env_dir:
        return env_dir
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "backend", "logs")


def list_session_files(logs_dir: str) -> List[str]:
    pattern = os.path.join(logs_dir, "session_*.jsonl")
    files = glob.glob(pattern)
    files.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    return files


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    # Skip partially written lines
                    continue
    except FileNotFoundError:
        return []
    return records


def format_ts(ts: Optional[str]) -> str:
    if not ts:
        return ""
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return ts


def event_palette(event: str) -> str:
    return {
        "user_message": "#1f6feb",
        "assistant_message": "#3fb950",
        "agent_step": "#9e6ffe",
        "slots": "#ffa657",
        "sent": "#d29922",
        "error": "#f85149",
        "info": "#8b949e",
    }.get(event, "#8b949e")


def describe_action(action: Dict[str, Any]) -> str:
    kind = action.get("kind")
    if kind == "sender_action":
        return f"[{action.get('action')}]"
    if kind == "text":
        return action.get("text", "")
    if kind == "attachment":
        return f"{action.get('media')}: {action.get('url')}"
    if kind == "quick_reply":
        return f"{action.get('title')} ({' / '.join(action.get('options', []))})"
    if kind == "generic":
        return f"carousel of {len(action.get('elements', []))} groups"
    return kind or "?"


def render_event(rec: Dict[str, Any]) -> None:
    ts = rec.get("ts")
    ev = rec.get("event")
    payload = rec.get("payload", {})
    color = event_palette(ev)

    with st.container():
        st.markdown(f"<div style='color:{color};font-weight:600'>{ev}</div>", unsafe_allow_html=True)
        if ts:
            st.caption(format_ts(ts))

        if ev == "user_message":
            st.markdown(f"User: {payload.get('message','')}")
        elif ev == "assistant_message":
            st.markdown(f"Bot: {payload.get('message','')}")
        elif ev == "agent_step":
            name = payload.get("name", "step")
            with st.expander(f"Step: {name}"):
                st.write("Input:")
                st.json(payload.get("input", {}), expanded=False)
                st.write("Output:")
                st.json(payload.get("output", {}), expanded=False)
        elif ev == "slots":
            with st.expander("Slots"):
                st.json(payload.get("to") or {}, expanded=True)
        elif ev == "sent":
            st.markdown(f"Sent: {describe_action(payload.get('action', {}))}")
        elif ev == "error":
            st.error(f"{payload.get('kind')}: {payload.get('message')}")
        else:
            st.json(payload, expanded=False)


def main() -> None:
    st.set_page_config(page_title="GroupBot Logs", layout="wide")
    st.title("GroupBot – Conversation Logs")

    logs_dir = get_logs_dir()
    st.sidebar.header("Controls")
    st.sidebar.write(f"Logs dir: {logs_dir}")
    if st.sidebar.button("Refresh"):
        st.rerun()

    files = list_session_files(logs_dir)
    if not files:
        st.info("No conversation logs found yet. Send a message to the page to generate logs.")
        return

    # Choose user (default: latest)
    file_labels = [os.path.basename(p) for p in files]
    choice = st.sidebar.selectbox("User", options=list(range(len(files))), format_func=lambda i: file_labels[i], index=0)
    path = files[choice]

    st.sidebar.subheader("Event filters")
    defaults = {"agent_step": False, "info": False}
    filters = {ev: st.sidebar.checkbox(ev, value=defaults.get(ev, True)) for ev in EVENTS}

    st.subheader(os.path.basename(path))
    try:
        mtime = os.path.getmtime(path)
        st.caption(f"Updated: {datetime.fromtimestamp(mtime).strftime('%Y-%m-%d %H:%M:%S')}")
    except OSError:
        pass

    records = read_jsonl(path)
    if not records:
        st.warning("Log file is empty.")
        return

    errors = Counter(r["payload"].get("kind") for r in records if r.get("event") == "error")
    if errors:
        st.sidebar.subheader("Errors")
        for kind, count in errors.most_common():
            st.sidebar.write(f"{kind}: {count}")

    for rec in records:
        ev = rec.get("event")
        if not filters.get(ev, False):
            continue
        render_event(rec)
        st.divider()

    with open(path, "rb") as f:
        st.download_button("Download log file", data=f, file_name=os.path.basename(path), mime="text/plain")


if __name__ == "__main__":
    main()
