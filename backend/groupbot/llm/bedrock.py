from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from langchain_aws import ChatBedrock

from groupbot.core.nlu import ROLES, SUBJECTS

EXTRACTION_SYSTEM = (
    "You read one chat message from a student and fill in their profile. "
    "Answer with a single JSON object and nothing else."
)

EXTRACTION_FIELDS = (
    f"role: one of {', '.join(ROLES)} or null.\n"
    f"subject: one of {', '.join(SUBJECTS)} or null.\n"
    "grade: school grade as an integer or null.\n"
    "Return a compact JSON: {role: string|null, subject: string|null, grade: number|null}.\n"
)


def get_bedrock_client() -> ChatBedrock:
    # Extraction wants short, repeatable answers
    return ChatBedrock(
        model_id=os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0"),
        region_name=os.getenv("AWS_REGION", "us-east-1"),
        model_kwargs={
            "temperature": float(os.getenv("BEDROCK_TEMPERATURE", "0.0")),
            "max_tokens": int(os.getenv("BEDROCK_MAX_TOKENS", "128")),
        },
    )


def missing_aws_credentials() -> bool:
    return not (os.getenv("AWS_ACCESS_KEY_ID") or os.getenv("AWS_PROFILE") or os.getenv("AWS_SESSION_TOKEN"))


def build_extraction_prompt(text: str, known: Optional[Dict[str, Any]]) -> str:
    return (
        "Extract the student's profile from the message.\n"
        + EXTRACTION_FIELDS
        + f"\nKnown: {json.dumps(known or {}, default=str)}\nUser: {text}\nJSON:"
    )


def parse_profile(text: str) -> Dict[str, Any]:
    """First JSON object found in the model output, or {} when there is none."""
    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return {}


def extract_profile(prompt: str, llm: Optional[ChatBedrock] = None) -> Dict[str, Any]:
    client = llm or get_bedrock_client()
    resp = client.invoke([
        {"role": "system", "content": EXTRACTION_SYSTEM},
        {"role": "user", "content": prompt},
    ])
    content = resp.content if hasattr(resp, "content") else str(resp)
    return parse_profile(content if isinstance(content, str) else str(content))
