from __future__ import annotations

from typing import List, Sequence

from .types import (
    AttachmentAction,
    CustomIntent,
    ImageReply,
    OutboundAction,
    QuickReplyAction,
    QuickReplyPrompt,
    ReplyDirective,
    RoutedReply,
    SpeechReply,
    TextAction,
)


class ReplyRouter:
    """Turn one NLU reply's directives into outbound actions.

    Output order is fixed: images, then a single speech bubble, then quick
    replies. The first custom intent is handed back for the caller to resolve.
    """

    def route(self, directives: Sequence[ReplyDirective]) -> RoutedReply:
        images = [d for d in directives if isinstance(d, ImageReply)]
        speeches = [d for d in directives if isinstance(d, SpeechReply)]
        prompts = [d for d in directives if isinstance(d, QuickReplyPrompt)]
        customs = [d for d in directives if isinstance(d, CustomIntent)]

        actions: List[OutboundAction] = [AttachmentAction(media="image", url=d.image_url) for d in images]

        speech = next((d for d in speeches if d.text), None)
        if speech is not None:
            actions.append(TextAction(text=speech.text))

        actions.extend(QuickReplyAction(title=d.title, options=list(d.options)) for d in prompts)

        return RoutedReply(actions=actions, custom=customs[0] if customs else None)
