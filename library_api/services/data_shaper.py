"""
Data shaping: project transfer objects down to the fields a client asked for.

``?fields=id,name`` turns an ``AuthorDto`` into ``{"id": ..., "name": ...}``.
Each shape gets one accessor table, built the first time it is used, so
shaping a page of results is a dictionary lookup per field.
"""

from functools import lru_cache
from operator import attrgetter
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel


class FieldNotFoundError(Exception):
    """Raised when a requested field does not exist on the shape."""


class ShapeFields:
    """Public field name -> accessor table for one transfer-object shape."""

    def __init__(self, shape: type[BaseModel]) -> None:
        self.shape = shape
        self._accessors: Dict[str, Tuple[str, Callable[[Any], Any]]] = {}
        for name, info in shape.model_fields.items():
            public_name = info.alias or name
            self._accessors[public_name.lower()] = (public_name, attrgetter(name))

    @property
    def public_names(self) -> List[str]:
        return [public_name for public_name, _ in self._accessors.values()]

    def accessors(self) -> List[Tuple[str, Callable[[Any], Any]]]:
        """``(public_name, accessor)`` pairs in declaration order."""
        return list(self._accessors.values())

    def resolve(self, field_name: str) -> Optional[Tuple[str, Callable[[Any], Any]]]:
        return self._accessors.get(field_name.strip().lower())

    def __contains__(self, field_name: str) -> bool:
        return self.resolve(field_name) is not None


@lru_cache(maxsize=None)
def shape_fields_for(shape: type[BaseModel]) -> ShapeFields:
    return ShapeFields(shape)


def split_fields(fields: Optional[str]) -> List[str]:
    """Split a comma-separated field list; empty or blank input yields []."""
    if not fields or not fields.strip():
        return []
    return [term.strip() for term in fields.split(",")]


def shape_item(item: BaseModel, fields: Optional[str] = None) -> Dict[str, Any]:
    """Shape a single object. All public fields when ``fields`` is empty."""
    table = shape_fields_for(type(item))
    requested = split_fields(fields)

    if not requested:
        return {public_name: accessor(item) for public_name, accessor in table.accessors()}

    shaped: Dict[str, Any] = {}
    for field_name in requested:
        resolved = table.resolve(field_name)
        if resolved is None:
            raise FieldNotFoundError(f"Property {field_name} wasn't found on {table.shape.__name__}")
        public_name, accessor = resolved
        shaped[public_name] = accessor(item)
    return shaped


def shape_data(items: Iterable[BaseModel], fields: Optional[str] = None) -> List[Dict[str, Any]]:
    """Shape every object in ``items`` with the same field selection."""
    if items is None:
        raise ValueError("items cannot be None.")
    return [shape_item(item, fields) for item in items]
