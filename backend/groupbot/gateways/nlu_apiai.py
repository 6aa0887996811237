from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import requests
from pydantic import ValidationError

from groupbot.core.config import Settings
from groupbot.core.errors import NluUnavailable
from groupbot.core.types import (
    CustomIntent,
    ImageReply,
    NluReply,
    QuickReplyPrompt,
    ReplyDirective,
    SpeechReply,
)

# api.ai v1 fulfillment message type codes
SPEECH, CARD, QUICK_REPLIES, IMAGE, CUSTOM = 0, 1, 2, 3, 4


def decode_directive(message: Mapping[str, Any]) -> Optional[ReplyDirective]:
    if not isinstance(message, Mapping):
        raise NluUnavailable(f"Malformed NLU message: {message!r}")
    kind = message.get("type")
    if kind == SPEECH:
        speech = message.get("speech") or ""
        # Some agents return a list of speech variants; the first one is used
        if isinstance(speech, list):
            speech = speech[0] if speech else ""
        return SpeechReply(text=str(speech))
    if kind == IMAGE:
        return ImageReply(image_url=message["imageUrl"])
    if kind == QUICK_REPLIES:
        return QuickReplyPrompt(title=message.get("title") or "", options=list(message.get("replies") or []))
    if kind == CUSTOM:
        payload = message.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise NluUnavailable(f"Custom payload is not an object: {payload!r}")
        return CustomIntent(intent_name=payload.get("intent"), payload=dict(payload))
    return None


def _decode(body: Mapping[str, Any]) -> NluReply:
    status = body.get("status") or {}
    code = status.get("code", 200)
    if isinstance(code, int) and code >= 400:
        raise NluUnavailable(f"NLU returned status {code}: {status.get('errorType')} {status.get('errorDetails', '')}".strip())

    result = body.get("result")
    if not isinstance(result, Mapping):
        raise NluUnavailable("NLU reply has no result")
    fulfillment = result.get("fulfillment") or {}
    messages = fulfillment.get("messages")
    if messages is None and fulfillment.get("speech"):
        messages = [{"type": SPEECH, "speech": fulfillment["speech"]}]
    if messages is not None and not isinstance(messages, list):
        raise NluUnavailable(f"NLU messages is not a list: {messages!r}")

    directives: List[ReplyDirective] = []
    for message in messages or []:
        directive = decode_directive(message)
        if directive is not None:
            directives.append(directive)
    return NluReply(parameters=dict(result.get("parameters") or {}), directives=directives)


def decode_reply(body: Any) -> NluReply:
    """Turn a `/query` response body into an NluReply; any shape problem is NluUnavailable."""
    if not isinstance(body, Mapping):
        raise NluUnavailable(f"NLU reply is not an object: {type(body).__name__}")
    try:
        return _decode(body)
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
        raise NluUnavailable(f"Malformed NLU reply: {exc}") from exc


class ApiAiGateway:
    """HTTP client for the api.ai v1 `/query` endpoint."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    def query(self, user_id: str, text: str, slots: Optional[Dict[str, Any]]) -> NluReply:
        body = {
            "query": text,
            "sessionId": user_id,
            "lang": self.settings.nlu_lang,
            "contexts": [{"name": "facebook", "parameters": slots or {}}],
        }
        try:
            resp = self.session.post(
                f"{self.settings.nlu_base_url}/query",
                params={"v": self.settings.nlu_protocol_version},
                headers={"Authorization": f"Bearer {self.settings.nlu_access_token}"},
                json=body,
                timeout=self.settings.http_timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise NluUnavailable(str(exc)) from exc
        return decode_reply(data)
