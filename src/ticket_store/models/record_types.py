"""
Record Type Catalogue

Declares every record type the stores know about: which store owns it, the
label its tickets carry, the ticket title, and the per-user capacity.
Labels and titles are a wire contract with tickets already on the platform.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.errors import ValidationError


@dataclass(frozen=True)
class CollectionType:
    """A record type stored as one JSON-array ticket per user."""

    label: str
    title_prefix: str
    max_items: int
    items_name: str = "items"

    def ticket_title(self, username: str) -> str:
        return f"{self.title_prefix} {username}"


@dataclass(frozen=True)
class RegistryType:
    """A record type stored as one comment per key under a shared registry ticket."""

    label: str
    title: str
    header: str


COLLECTION_TYPES: dict[str, CollectionType] = {
    "skill-builds": CollectionType(
        label="skill-builds",
        title_prefix="[Skill Build]",
        max_items=10,
        items_name="builds",
    ),
    "battle-loadouts": CollectionType(
        label="battle-loadouts",
        title_prefix="[Battle Loadout]",
        max_items=10,
        items_name="loadouts",
    ),
    "spirit-builds": CollectionType(
        label="spirit-builds",
        title_prefix="[Spirit Builds]",
        max_items=10,
        items_name="builds",
    ),
    "engraving-builds": CollectionType(
        label="engraving-builds",
        title_prefix="[Soul Weapon Engraving]",
        max_items=10,
        items_name="builds",
    ),
    "my-spirits": CollectionType(
        label="my-spirits",
        title_prefix="[My Spirits]",
        max_items=500,
        items_name="spirits",
    ),
}

REGISTRY_TYPES: dict[str, RegistryType] = {
    "profile-pictures": RegistryType(
        label="profile-pictures",
        title="[Profile Pictures Registry]",
        header="# Profile Pictures Index\n\n<!-- userId -> commentId mapping -->",
    ),
    "rate-limits": RegistryType(
        label="rate-limits",
        title="[Rate Limits Registry]",
        header="# Rate Limits Index\n\n<!-- identifierHash -> commentId mapping -->",
    ),
}


def get_collection_type(record_type: str) -> CollectionType:
    """
    Look up a collection record type.

    Raises:
        ValidationError: If the type is unknown or belongs to the registry store
    """
    config: Optional[CollectionType] = COLLECTION_TYPES.get(record_type)
    if config is None:
        raise ValidationError(
            f"Unknown collection type: {record_type!r}. "
            f"Must be one of: {', '.join(sorted(COLLECTION_TYPES))}"
        )
    return config


def get_registry_type(record_type: str) -> RegistryType:
    """
    Look up a registry record type.

    Raises:
        ValidationError: If the type is unknown or belongs to the collection store
    """
    config: Optional[RegistryType] = REGISTRY_TYPES.get(record_type)
    if config is None:
        raise ValidationError(
            f"Unknown registry type: {record_type!r}. "
            f"Must be one of: {', '.join(sorted(REGISTRY_TYPES))}"
        )
    return config


def register_collection_type(config: CollectionType) -> None:
    """Add a collection record type to the catalogue."""
    if config.label in REGISTRY_TYPES:
        raise ValidationError(f"{config.label!r} is already a registry type")
    if config.max_items < 1:
        raise ValidationError("max_items must be at least 1")
    COLLECTION_TYPES[config.label] = config


def register_registry_type(config: RegistryType) -> None:
    """Add a registry record type to the catalogue."""
    if config.label in COLLECTION_TYPES:
        raise ValidationError(f"{config.label!r} is already a collection type")
    REGISTRY_TYPES[config.label] = config


def catalogue() -> list[dict[str, object]]:
    """Describe every known record type (used by the CLI)."""
    entries: list[dict[str, object]] = []
    for config in COLLECTION_TYPES.values():
        entries.append(
            {
                "record_type": config.label,
                "store": "collection",
                "title": config.ticket_title("{username}"),
                "max_items": config.max_items,
            }
        )
    for registry in REGISTRY_TYPES.values():
        entries.append(
            {
                "record_type": registry.label,
                "store": "registry",
                "title": registry.title,
                "max_items": None,
            }
        )
    return entries
