from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from groupbot.core.config import Settings
from groupbot.core.errors import GroupJoinFailed, ProfileLookupFailed, SendFailed
from groupbot.core.types import (
    AttachmentAction,
    ButtonTemplateAction,
    GenericTemplateAction,
    OutboundAction,
    QuickReplyAction,
    SenderAction,
    TextAction,
)

PROFILE_FIELDS = "first_name,last_name,profile_pic,locale,timezone,gender"
TEXT_METADATA = "DEVELOPER_DEFINED_METADATA"


def build_message(recipient_id: str, action: OutboundAction) -> Dict[str, Any]:
    """Send API request body for one outbound action."""
    body: Dict[str, Any] = {"recipient": {"id": recipient_id}}

    if isinstance(action, SenderAction):
        body["sender_action"] = action.action
    elif isinstance(action, TextAction):
        body["message"] = {"text": action.text, "metadata": TEXT_METADATA}
    elif isinstance(action, AttachmentAction):
        body["message"] = {"attachment": {"type": action.media, "payload": {"url": action.url}}}
    elif isinstance(action, QuickReplyAction):
        body["message"] = {
            "text": action.title,
            "quick_replies": [
                {"content_type": "text", "title": option, "payload": option} for option in action.options
            ],
        }
    elif isinstance(action, GenericTemplateAction):
        body["message"] = {
            "attachment": {
                "type": "template",
                "payload": {
                    "template_type": "generic",
                    "elements": [
                        {
                            "title": el.title,
                            "default_action": {"type": "web_url", "url": el.url, "webview_height_ratio": "tall"},
                            "image_url": el.image_url,
                            "subtitle": el.subtitle,
                        }
                        for el in action.elements
                    ],
                },
            }
        }
    elif isinstance(action, ButtonTemplateAction):
        body["message"] = {
            "attachment": {
                "type": "template",
                "payload": {
                    "template_type": "button",
                    "text": action.text,
                    "buttons": [b.model_dump(exclude_none=True) for b in action.buttons],
                },
            }
        }
    else:
        raise TypeError(f"Unsupported action: {action!r}")
    return body


def _error_detail(resp: requests.Response) -> str:
    try:
        error = resp.json().get("error") or {}
        return error.get("message") or resp.reason or ""
    except ValueError:
        return resp.reason or ""


class MessengerClient:
    """Graph API calls: Send API, profile lookup and group membership."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def _auth(self) -> Dict[str, str]:
        return {"access_token": self.settings.page_access_token}

    def send(self, recipient_id: str, action: OutboundAction) -> Optional[str]:
        """Deliver one action; returns the message id when the platform reports one."""
        try:
            resp = self.session.post(
                f"{self.settings.graph_api_url}/v2.6/me/messages",
                params=self._auth,
                json=build_message(recipient_id, action),
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as exc:
            raise SendFailed(str(exc)) from exc
        if resp.status_code != 200:
            raise SendFailed(f"Failed calling Send API: {_error_detail(resp)}", resp.status_code)
        try:
            return resp.json().get("message_id")
        except ValueError:
            return None

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        try:
            resp = self.session.get(
                f"{self.settings.graph_api_url}/v2.6/{user_id}",
                params={"fields": PROFILE_FIELDS, **self._auth},
                timeout=self.settings.http_timeout,
            )
            if resp.status_code != 200:
                raise ProfileLookupFailed(f"Failed getting user profile: {resp.status_code} {_error_detail(resp)}")
            return resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise ProfileLookupFailed(str(exc)) from exc

    def join_group(self, group_id: str, user_id: str) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                f"{self.settings.graph_api_url}/v2.9/{group_id}/members",
                params=self._auth,
                data={"member": user_id},
                timeout=self.settings.http_timeout,
            )
        except requests.RequestException as exc:
            raise GroupJoinFailed(str(exc)) from exc
        if resp.status_code != 200:
            raise GroupJoinFailed(f"Failed sending invite: {_error_detail(resp)}", resp.status_code)
        try:
            return resp.json()
        except ValueError:
            return {}
