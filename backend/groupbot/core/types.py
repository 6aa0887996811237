from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


# Reply directives decoded from an NLU reply


class SpeechReply(BaseModel):
    kind: Literal["speech"] = "speech"
    text: str = ""


class ImageReply(BaseModel):
    kind: Literal["image"] = "image"
    image_url: str


class QuickReplyPrompt(BaseModel):
    kind: Literal["quick_reply"] = "quick_reply"
    title: str
    options: List[str] = Field(default_factory=list)


class CustomIntent(BaseModel):
    kind: Literal["custom"] = "custom"
    intent_name: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)


ReplyDirective = Annotated[
    Union[SpeechReply, ImageReply, QuickReplyPrompt, CustomIntent],
    Field(discriminator="kind"),
]


class NluReply(BaseModel):
    parameters: Dict[str, Any] = Field(default_factory=dict)
    directives: List[ReplyDirective] = Field(default_factory=list)


# Catalog


class CatalogItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    image_url: str
    roles: Tuple[str, ...] = ()
    subjects: Tuple[str, ...] = ()
    min_grade: int = 0
    group_id: str


class Criteria(BaseModel):
    role: Optional[str] = None
    subject: Optional[str] = None
    grade: Optional[int] = None


# Outbound actions handed to the message sender


class TextAction(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class AttachmentAction(BaseModel):
    kind: Literal["attachment"] = "attachment"
    media: Literal["image", "audio", "video", "file"] = "image"
    url: str


class QuickReplyAction(BaseModel):
    kind: Literal["quick_reply"] = "quick_reply"
    title: str
    options: List[str] = Field(default_factory=list)


class GenericElement(BaseModel):
    title: str
    url: str
    image_url: str
    subtitle: str


class GenericTemplateAction(BaseModel):
    kind: Literal["generic"] = "generic"
    elements: List[GenericElement]


class Button(BaseModel):
    type: Literal["web_url", "postback", "phone_number", "account_link"]
    title: Optional[str] = None
    url: Optional[str] = None
    payload: Optional[str] = None


class ButtonTemplateAction(BaseModel):
    kind: Literal["buttons"] = "buttons"
    text: str
    buttons: List[Button]


class SenderAction(BaseModel):
    kind: Literal["sender_action"] = "sender_action"
    action: Literal["typing_on", "typing_off", "mark_seen"]


OutboundAction = Annotated[
    Union[
        TextAction,
        AttachmentAction,
        QuickReplyAction,
        GenericTemplateAction,
        ButtonTemplateAction,
        SenderAction,
    ],
    Field(discriminator="kind"),
]


class RoutedReply(BaseModel):
    actions: List[OutboundAction] = Field(default_factory=list)
    custom: Optional[CustomIntent] = None


# Inbound messaging events, validated one at a time. Unknown platform fields are kept so they can be logged.


class _Event(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


class Party(_Event):
    id: str


class QuickReplyPayload(_Event):
    payload: str


class IncomingMessage(_Event):
    mid: Optional[str] = None
    text: Optional[str] = None
    is_echo: bool = False
    app_id: Optional[Union[int, str]] = None
    metadata: Optional[str] = None
    quick_reply: Optional[QuickReplyPayload] = None
    attachments: Optional[List[Dict[str, Any]]] = None


class Optin(_Event):
    ref: Optional[str] = None


class Delivery(_Event):
    mids: Optional[List[str]] = None
    watermark: Optional[int] = None
    seq: Optional[int] = None


class Postback(_Event):
    payload: str = ""


class Read(_Event):
    watermark: Optional[int] = None
    seq: Optional[int] = None


class AccountLinking(_Event):
    status: Optional[str] = None
    authorization_code: Optional[str] = None


class MessagingEvent(_Event):
    sender: Party
    recipient: Optional[Party] = None
    timestamp: Optional[int] = None
    optin: Optional[Optin] = None
    message: Optional[IncomingMessage] = None
    delivery: Optional[Delivery] = None
    postback: Optional[Postback] = None
    read: Optional[Read] = None
    account_linking: Optional[AccountLinking] = None
