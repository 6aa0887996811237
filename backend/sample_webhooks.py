import sys
import time

import requests

API = 'http://127.0.0.1:8000'


def event(user_id: str, text: str = None, quick_reply: str = None) -> dict:
  message = {"mid": f"mid.{time.time()}", "text": text or quick_reply}
  if quick_reply:
    message["quick_reply"] = {"payload": quick_reply}
  return {
    "sender": {"id": user_id},
    "recipient": {"id": "PAGE_ID"},
    "timestamp": int(time.time() * 1000),
    "message": message,
  }


def post(*events: dict) -> None:
  body = {"object": "page", "entry": [{"id": "PAGE_ID", "time": int(time.time() * 1000), "messaging": list(events)}]}
  r = requests.post(f"{API}/webhook", json=body)
  r.raise_for_status()
  print(r.status_code, r.text)


if __name__ == '__main__':
  # Run the server with NLU_BACKEND=rules to try this without an NLU agent
  user = sys.argv[1] if len(sys.argv) > 1 else "1000000000000001"
  post(event(user, "hi"))
  post(event(user, quick_reply="Engineer"))
  post(event(user, "I like math"))
  post(event(user, "grade 5"), event("1000000000000002", "hello"))
