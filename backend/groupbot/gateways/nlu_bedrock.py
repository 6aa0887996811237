from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from groupbot.core.config import SlotNames
from groupbot.core.errors import NluUnavailable
from groupbot.core.nlu import ROLES, SUBJECTS, detect_grade
from groupbot.core.types import NluReply
from groupbot.gateways.nlu_rules import RuleNluGateway
from groupbot.llm.bedrock import (
    build_extraction_prompt,
    extract_profile,
    get_bedrock_client,
    missing_aws_credentials,
)


class BedrockNluGateway:
    """Parameter extraction by a Bedrock chat model; replies are built by the rule gateway.

    Without AWS credentials every call goes to the rule gateway.
    """

    def __init__(
        self,
        slot_names: SlotNames = SlotNames(),
        llm_call: Optional[Callable[[str], Any]] = None,
    ) -> None:
        self.slot_names = slot_names
        self.rules = RuleNluGateway(slot_names)
        self._llm_call = llm_call
        self._llm = None

    def _call(self, prompt: str) -> Any:
        if self._llm_call is not None:
            return self._llm_call(prompt)
        if self._llm is None:
            self._llm = get_bedrock_client()
        return extract_profile(prompt, self._llm)

    def _normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        role = data.get("role")
        if isinstance(role, str) and role.lower() in ROLES:
            params[self.slot_names.role] = role.lower()
        subject = data.get("subject")
        if isinstance(subject, str):
            for known in SUBJECTS:
                if known.lower() == subject.lower():
                    params[self.slot_names.subject] = known
        grade = data.get("grade")
        if isinstance(grade, (int, float)) and not isinstance(grade, bool):
            params[self.slot_names.grade] = int(grade)
        elif isinstance(grade, str) and detect_grade(grade) is not None:
            params[self.slot_names.grade] = detect_grade(grade)
        return params

    def query(self, user_id: str, text: str, slots: Optional[Dict[str, Any]]) -> NluReply:
        if self._llm_call is None and missing_aws_credentials():
            return self.rules.query(user_id, text, slots)

        prompt = build_extraction_prompt(text, slots)
        try:
            raw = self._call(prompt)
        except Exception as exc:
            raise NluUnavailable(f"Bedrock call failed: {exc}") from exc

        data = raw if isinstance(raw, dict) else {}
        params = self._normalize(data)
        # Rule-based replies on top of the model's parameters
        reply = self.rules.query(user_id, text, {**(slots or {}), **params})
        return NluReply(parameters={**reply.parameters, **params}, directives=reply.directives)
