"""
Ticket Store Data Models

Record type catalogue shared by the collection and registry stores.
"""

from .record_types import (
    COLLECTION_TYPES,
    REGISTRY_TYPES,
    CollectionType,
    RegistryType,
    catalogue,
    get_collection_type,
    get_registry_type,
    register_collection_type,
    register_registry_type,
)

__all__ = [
    "COLLECTION_TYPES",
    "REGISTRY_TYPES",
    "CollectionType",
    "RegistryType",
    "catalogue",
    "get_collection_type",
    "get_registry_type",
    "register_collection_type",
    "register_registry_type",
]
