from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional

from .catalog import CatalogIndex
from .config import SlotNames
from .slot_store import SlotStore
from .types import (
    CatalogItem,
    Criteria,
    GenericElement,
    GenericTemplateAction,
    OutboundAction,
    TextAction,
)

MAX_RECOMMENDATIONS = 5
# Hardest-to-qualify groups first.
RANK_DESCENDING = True

INTRO_TEXT = "I think you might like to join these groups: "
NO_MATCH_TEXT = "I can't find any active groups that match your profile..."

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def coerce_grade(value: Any) -> Optional[int]:
    """Return the grade as an int, or None when it cannot impose a constraint."""
    if isinstance(value, Mapping):
        value = value.get("amount")
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    return None


def _text_slot(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def criteria_from_slots(slots: Optional[Mapping[str, Any]], names: SlotNames = SlotNames()) -> Criteria:
    slots = slots or {}
    return Criteria(
        role=_text_slot(slots.get(names.role)),
        subject=_text_slot(slots.get(names.subject)),
        grade=coerce_grade(slots.get(names.grade)),
    )


def matches(item: CatalogItem, criteria: Criteria) -> bool:
    if criteria.role is not None and criteria.role not in item.roles:
        return False
    if criteria.grade is not None and item.min_grade > criteria.grade:
        return False
    if criteria.subject is not None and criteria.subject not in item.subjects:
        return False
    return True


def recommend(
    items: Iterable[CatalogItem],
    criteria: Criteria,
    limit: int = MAX_RECOMMENDATIONS,
) -> List[CatalogItem]:
    survivors = [item for item in items if matches(item, criteria)]
    # sorted() is stable under reverse=True, so equal thresholds keep catalog order
    ranked = sorted(survivors, key=lambda item: item.min_grade, reverse=RANK_DESCENDING)
    return ranked[: max(0, limit)]


def _subtitle(item: CatalogItem) -> str:
    return "For: " + ", ".join(role[:1].upper() + role[1:] for role in item.roles)


def build_actions(items: List[CatalogItem], group_url_template: str) -> List[OutboundAction]:
    if not items:
        return [TextAction(text=NO_MATCH_TEXT)]
    elements = [
        GenericElement(
            title=item.title,
            url=group_url_template.format(group_id=item.group_id),
            image_url=item.image_url,
            subtitle=_subtitle(item),
        )
        for item in items
    ]
    return [TextAction(text=INTRO_TEXT), GenericTemplateAction(elements=elements)]


@dataclass
class Recommendation:
    criteria: Criteria
    items: List[CatalogItem] = field(default_factory=list)
    actions: List[OutboundAction] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        return bool(self.items)


class RecommendationEngine:
    def __init__(
        self,
        catalog: CatalogIndex,
        store: SlotStore,
        slot_names: SlotNames = SlotNames(),
        group_url_template: str = "https://www.facebook.com/groups/{group_id}",
        limit: int = MAX_RECOMMENDATIONS,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.slot_names = slot_names
        self.group_url_template = group_url_template
        self.limit = limit

    def run(self, user_id: str, slots: Optional[Mapping[str, Any]]) -> Recommendation:
        """Rank the catalog for the given slots; a non-empty result ends the user's session."""
        criteria = criteria_from_slots(slots, self.slot_names)
        items = recommend(self.catalog, criteria, self.limit)
        result = Recommendation(
            criteria=criteria,
            items=items,
            actions=build_actions(items, self.group_url_template),
        )
        if result.completed:
            self.store.clear(user_id)
        return result
