from __future__ import annotations

from typing import Any, Dict, List, Optional

from groupbot.core.config import SlotNames
from groupbot.core.nlu import SLOT_PROMPTS, extract_slots, missing_slots
from groupbot.core.types import CustomIntent, NluReply, QuickReplyPrompt, ReplyDirective, SpeechReply


class RuleNluGateway:
    """Local stand-in for the NLU service, driven by regex extraction."""

    def __init__(self, slot_names: SlotNames = SlotNames()) -> None:
        self.slot_names = slot_names

    def query(self, user_id: str, text: str, slots: Optional[Dict[str, Any]]) -> NluReply:
        found = extract_slots(text, self.slot_names)
        known = {**(slots or {}), **found}
        missing = missing_slots(known, self.slot_names)

        directives: List[ReplyDirective] = []
        if not missing:
            directives.append(SpeechReply(text="Great, let me find some groups for you."))
            directives.append(CustomIntent(intent_name="find_groups", payload={"intent": "find_groups"}))
            return NluReply(parameters=found, directives=directives)

        if not slots or not any(k for k in slots if k != self.slot_names.user_name):
            name = (slots or {}).get(self.slot_names.user_name)
            directives.append(SpeechReply(text=f"Hi {name}! Let's find a group for you." if name else "Hi! Let's find a group for you."))
        title, options = SLOT_PROMPTS[missing[0]]
        directives.append(QuickReplyPrompt(title=title, options=options))
        return NluReply(parameters=found, directives=directives)
