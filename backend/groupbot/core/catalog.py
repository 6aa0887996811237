from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from .types import CatalogItem


def _absolute_url(ref: str, server_url: str) -> str:
    if ref.startswith(("http://", "https://")):
        return ref
    return f"{server_url.rstrip('/')}/{ref.lstrip('/')}"


class CatalogIndex:
    """Read-only list of recommendable groups, in file order."""

    def __init__(self, items: Iterable[CatalogItem]) -> None:
        self._items: Tuple[CatalogItem, ...] = tuple(items)

    @classmethod
    def load(cls, path: Path, server_url: str = "") -> "CatalogIndex":
        """Load `{"groups": [...]}` from JSON; relative image paths are served from server_url.

        A missing file or malformed JSON raises; a catalog is required at startup.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_records(data.get("groups", []), server_url)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]], server_url: str = "") -> "CatalogIndex":
        items = []
        for rec in records:
            items.append(
                CatalogItem(
                    title=rec["title"],
                    image_url=_absolute_url(rec.get("image_url") or rec.get("image", ""), server_url),
                    roles=tuple(rec.get("roles", [])),
                    subjects=tuple(rec.get("subjects", [])),
                    min_grade=int(rec.get("min_grade", 0)),
                    group_id=str(rec["group_id"]),
                )
            )
        return cls(items)

    def __iter__(self) -> Iterator[CatalogItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> Tuple[CatalogItem, ...]:
        return self._items
