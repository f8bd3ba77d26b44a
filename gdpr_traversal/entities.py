"""
Entity objects handed to the traversal engine.

An entity is identified by (entity_type, id) and belongs to a bundle.
Only FieldableEntity instances carry field values and can be traversed.
"""

import copy
from typing import Any, Dict, Iterable, List, Optional, Tuple


EntityKey = Tuple[str, Any]


class Entity:
    """A record without field-level access (leaf for traversal)."""

    def __init__(self, entity_type: str, id: Any, bundle: Optional[str] = None):
        self.entity_type = entity_type
        self.id = id
        self.bundle = bundle or entity_type

    @property
    def key(self) -> EntityKey:
        return (self.entity_type, self.id)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entity_type}:{self.id}, bundle={self.bundle})"


class FieldableEntity(Entity):
    """
    Entity holding named fields.

    Every field is a list of values; an empty list means the field is present
    but has no value. Entity reference fields hold the ids of their targets.
    """

    def __init__(
        self,
        entity_type: str,
        id: Any,
        bundle: Optional[str] = None,
        fields: Optional[Dict[str, Iterable[Any]]] = None,
    ):
        super().__init__(entity_type, id, bundle)
        self.fields: Dict[str, List[Any]] = {
            name: _as_list(values) for name, values in (fields or {}).items()
        }

    def has_field(self, name: str) -> bool:
        return name in self.fields

    def get(self, name: str) -> List[Any]:
        return self.fields.get(name, [])

    def value(self, name: str) -> Any:
        """First value of a field, or None."""
        values = self.get(name)
        return values[0] if values else None

    def set(self, name: str, values: Any) -> None:
        self.fields[name] = _as_list(values)

    def clear(self, name: str) -> None:
        self.fields[name] = []

    def copy(self) -> "FieldableEntity":
        return FieldableEntity(
            self.entity_type,
            self.id,
            self.bundle,
            copy.deepcopy(self.fields),
        )


def _as_list(values: Any) -> List[Any]:
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]
