from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_CATALOG = BASE_DIR / "data" / "catalog.json"
DEFAULT_LOGS_DIR = (BASE_DIR / ".." / "logs").resolve()

NLU_BACKENDS = ("apiai", "rules", "bedrock")


@dataclass(frozen=True)
class SlotNames:
    """Names of the NLU parameters the recommendation step reads."""
    role: str = "user-aspiration"
    subject: str = "subject-availability"
    grade: str = "user-grade"
    user_name: str = "user-name"


@dataclass(frozen=True)
class Settings:
    page_access_token: str
    validation_token: str
    server_url: str
    graph_api_url: str
    nlu_backend: str
    nlu_base_url: str
    nlu_access_token: str
    nlu_protocol_version: str
    nlu_lang: str
    http_timeout: float
    catalog_path: Path
    group_url_template: str
    max_recommendations: int
    recommendation_delay: float
    logs_dir: Path
    slots: SlotNames = SlotNames()


def load_settings(env_file: str | os.PathLike | None = None) -> Settings:
    """Build Settings from the environment, after loading an optional .env file.

    Invalid numeric values raise ValueError; an unknown NLU_BACKEND raises ValueError.
    """
    env_path = Path(env_file) if env_file else BASE_DIR / ".." / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)

    backend = os.getenv("NLU_BACKEND", "apiai").lower()
    if backend not in NLU_BACKENDS:
        raise ValueError(f"NLU_BACKEND must be one of {', '.join(NLU_BACKENDS)}, got {backend!r}")

    return Settings(
        page_access_token=os.getenv("MESSENGER_PAGE_ACCESS_TOKEN", ""),
        validation_token=os.getenv("MESSENGER_VALIDATION_TOKEN", ""),
        server_url=os.getenv("SERVER_URL", "http://localhost:8000").rstrip("/"),
        graph_api_url=os.getenv("GRAPH_API_URL", "https://graph.facebook.com").rstrip("/"),
        nlu_backend=backend,
        nlu_base_url=os.getenv("NLU_BASE_URL", "https://api.api.ai/v1").rstrip("/"),
        nlu_access_token=os.getenv("NLU_ACCESS_TOKEN", ""),
        nlu_protocol_version=os.getenv("NLU_PROTOCOL_VERSION", "20150910"),
        nlu_lang=os.getenv("NLU_LANG", "en"),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
        catalog_path=Path(os.getenv("CATALOG_PATH") or DEFAULT_CATALOG),
        group_url_template=os.getenv("GROUP_URL_TEMPLATE", "https://www.facebook.com/groups/{group_id}"),
        max_recommendations=int(os.getenv("MAX_RECOMMENDATIONS", "5")),
        recommendation_delay=float(os.getenv("RECOMMENDATION_DELAY", "1.0")),
        logs_dir=Path(os.getenv("LOGS_DIR") or DEFAULT_LOGS_DIR),
    )
