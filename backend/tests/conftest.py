from typing import Any, Dict, List, Optional, Tuple

import pytest

from groupbot.core.catalog import CatalogIndex
from groupbot.core.config import DEFAULT_CATALOG
from groupbot.core.errors import GroupJoinFailed, ProfileLookupFailed, SendFailed
from groupbot.core.pipeline import RelayPipeline
from groupbot.core.recommend import RecommendationEngine
from groupbot.core.scheduler import InlineScheduler
from groupbot.core.slot_store import SlotStore
from groupbot.core.types import NluReply


class RecordingSender:
    def __init__(self, profile: Optional[Dict[str, Any]] = None) -> None:
        self.sent: List[Tuple[str, Any]] = []
        self.profile = profile
        self.profile_calls: List[str] = []
        self.joins: List[Tuple[str, str]] = []
        self.fail_kinds: set = set()
        self.fail_join = False

    def send(self, recipient_id, action):
        if action.kind in self.fail_kinds:
            raise SendFailed("boom", 500)
        self.sent.append((recipient_id, action))
        return f"mid.{len(self.sent)}"

    def get_profile(self, user_id):
        self.profile_calls.append(user_id)
        if self.profile is None:
            raise ProfileLookupFailed("no profile")
        return self.profile

    def join_group(self, group_id, user_id):
        if self.fail_join:
            raise GroupJoinFailed("denied", 403)
        self.joins.append((group_id, user_id))
        return {"success": True}

    def kinds(self) -> List[str]:
        out = []
        for _, action in self.sent:
            out.append(action.action if action.kind == "sender_action" else action.kind)
        return out

    def texts(self) -> List[str]:
        return [a.text for _, a in self.sent if a.kind == "text"]


class ScriptedGateway:
    """Returns queued replies (or raises queued exceptions) in order."""

    def __init__(self, *replies) -> None:
        self.replies = list(replies)
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []

    def query(self, user_id, text, slots):
        self.calls.append((user_id, text, slots))
        reply = self.replies.pop(0) if self.replies else NluReply()
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def catalog():
    return CatalogIndex.load(DEFAULT_CATALOG, "https://bot.example.com")


@pytest.fixture
def store():
    return SlotStore()


@pytest.fixture
def sender():
    return RecordingSender(profile={"first_name": "Ada", "last_name": "Lovelace"})


@pytest.fixture
def make_pipeline(tmp_path, catalog, store, sender):
    def _make(gateway, scheduler=None, sender_override=None):
        engine = RecommendationEngine(catalog, store)
        return RelayPipeline(
            store=store,
            gateway=gateway,
            sender=sender_override or sender,
            engine=engine,
            scheduler=scheduler or InlineScheduler(),
            logs_dir=str(tmp_path / "logs"),
        )

    return _make
