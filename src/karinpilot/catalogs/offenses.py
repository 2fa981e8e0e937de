"""
Offense Catalogue

Immutable collection of offense types matched against case narratives,
plus the category-specific control templates that come with them.
"""
from __future__ import annotations

from collections.abc import Iterator
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from ..canon import content_hash
from ..exceptions import CatalogueIntegrityError
from ..models import OffenseCatalogEntry


class OffenseCatalogue:
    """
    Read-only offense catalogue, loaded once per process.

    Integrity checks at construction:
    - offense IDs are unique
    - every offense has at least one keyword
    - no keyword normalizes to an empty string
    - no two keywords of one offense normalize to the same text
    """

    def __init__(
        self,
        entries: Iterable[OffenseCatalogEntry],
        category_controls: Optional[Mapping[str, Iterable[str]]] = None,
        default_controls: Iterable[str] = (),
        name: str = "",
        version: str = "",
    ):
        entries = tuple(entries)
        errors: list[str] = []
        seen_ids: set[str] = set()

        for entry in entries:
            if entry.id in seen_ids:
                errors.append(f"Duplicate offense ID: '{entry.id}'")
            seen_ids.add(entry.id)
            if not entry.keywords:
                errors.append(f"Offense '{entry.id}' has no keywords")
            normalized = [n for n, _ in entry.normalized_keywords]
            if any(not n for n in normalized):
                errors.append(f"Offense '{entry.id}' has a blank keyword")
            if len(set(normalized)) != len(normalized):
                errors.append(
                    f"Offense '{entry.id}' has keywords that differ only by case or accents"
                )

        if errors:
            raise CatalogueIntegrityError(
                message="Offense catalogue failed integrity checks",
                details={"errors": errors},
            )

        self._entries = entries
        self._by_id = MappingProxyType({entry.id: entry for entry in entries})
        self.category_controls = MappingProxyType(
            {category: tuple(controls) for category, controls in (category_controls or {}).items()}
        )
        self.default_controls = tuple(default_controls)
        self.name = name
        self.version = version
        self.content_hash = content_hash([entry.to_dict() for entry in entries])

    def __iter__(self) -> Iterator[OffenseCatalogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, offense_id: str) -> Optional[OffenseCatalogEntry]:
        return self._by_id.get(offense_id)

    @property
    def categories(self) -> list[str]:
        return sorted({entry.category for entry in self._entries})

    def controls_for(self, category: str) -> tuple[str, ...]:
        """Category controls, falling back to the catalogue defaults."""
        return self.category_controls.get(category, self.default_controls)
