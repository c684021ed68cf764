"""
signalgrid persistence
======================
One JSON document shape, two channels:

    LocalStore(root).save(graph)          → <root>/ads_logic_save.json
    LocalStore(root).load()               → Graph | None
    export_file(graph, "ads_network.json")   (adds "exportedAt")
    import_file("ads_network.json")       → Graph

Malformed documents raise SchemaError; disk failures raise StorageError.
"""

from .codec import (
    deserialize,
    dumps,
    export_document,
    export_file,
    import_file,
    loads,
    serialize,
)
from .schema import SchemaError, validate, validate_file, validate_text
from .store import DEFAULT_SLOT, LocalStore, StorageError

__all__ = [
    "DEFAULT_SLOT",
    "LocalStore",
    "SchemaError",
    "StorageError",
    "deserialize",
    "dumps",
    "export_document",
    "export_file",
    "import_file",
    "loads",
    "serialize",
    "validate",
    "validate_file",
    "validate_text",
]
