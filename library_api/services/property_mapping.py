"""
Property mapping between public transfer-object fields and storage columns.

Clients sort on the names they see (``name``, ``age``) while the store sorts
on its own columns (``first_name``, ``last_name``, ``date_of_birth``). A
``PropertyMapping`` holds that translation for one (source, destination) pair
and ``PropertyMappingService`` is the registry the API and repository consult.
"""

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from library_api.author import Author
from library_api.models import AuthorDto

logger = logging.getLogger(__name__)

DESCENDING_SUFFIX = " desc"


class ConfigurationError(Exception):
    """Raised when no property mapping is registered for a pair of types."""


class PropertyMappingValue:
    """One or more backing columns for a public field, plus a reverse flag."""

    def __init__(self, destination_properties: List[str], revert: bool = False) -> None:
        if not destination_properties:
            raise ValueError("destination_properties cannot be empty.")
        self.destination_properties = list(destination_properties)
        self.revert = revert


class PropertyMapping:
    """Case-insensitive table of public field name -> PropertyMappingValue."""

    def __init__(self, mapping_dictionary: Dict[str, PropertyMappingValue]) -> None:
        self._mapping = {name.lower(): value for name, value in mapping_dictionary.items()}

    def get(self, property_name: str) -> Optional[PropertyMappingValue]:
        return self._mapping.get(property_name.strip().lower())

    def __contains__(self, property_name: str) -> bool:
        return self.get(property_name) is not None


_author_property_mapping = {
    "Id": PropertyMappingValue(["id"]),
    "Genre": PropertyMappingValue(["genre"]),
    # Older authors have earlier birth dates, so ascending age is descending date
    "Age": PropertyMappingValue(["date_of_birth"], revert=True),
    "Name": PropertyMappingValue(["first_name", "last_name"]),
}


def parse_order_by(order_by: Optional[str]) -> Iterator[Tuple[str, bool]]:
    """Yield ``(property_name, descending)`` for each comma-separated term."""
    if not order_by or not order_by.strip():
        return
    for clause in order_by.split(","):
        term = clause.strip()
        descending = term.lower().endswith(DESCENDING_SUFFIX)
        if descending:
            term = term[: -len(DESCENDING_SUFFIX)].strip()
        yield term, descending


def build_order_by(order_by: Optional[str], mapping: PropertyMapping) -> List[str]:
    """Translate a public sort expression into SQL ``ORDER BY`` terms.

    Terms keep their order, so the first one is the primary key. Each backing
    column's ``revert`` flag is XORed with the term's own descending marker.
    """
    if mapping is None:
        raise ValueError("mapping cannot be None.")

    clauses: List[str] = []
    for property_name, descending in parse_order_by(order_by):
        value = mapping.get(property_name) if property_name else None
        if value is None:
            raise ValueError(f"Key mapping for {property_name!r} is missing.")
        for column in value.destination_properties:
            direction = "DESC" if descending != value.revert else "ASC"
            clauses.append(f"{column} {direction}")
    return clauses


class PropertyMappingService:
    """Registry of property mappings keyed by (source, destination) type."""

    def __init__(self) -> None:
        self._property_mappings: List[Tuple[type, type, PropertyMapping]] = []

    def register(self, source: type, destination: type, mapping: PropertyMapping) -> None:
        self._property_mappings.append((source, destination, mapping))

    def get_property_mapping(self, source: type, destination: type) -> PropertyMapping:
        matches = [
            mapping for src, dest, mapping in self._property_mappings
            if src is source and dest is destination
        ]
        if len(matches) == 1:
            return matches[0]
        raise ConfigurationError(
            f"Cannot find exact property mapping instance for <{source.__name__},{destination.__name__}>"
        )

    def valid_mapping_exists_for(self, source: type, destination: type, order_by: Optional[str]) -> bool:
        """True when every term of ``order_by`` resolves through the mapping."""
        mapping = self.get_property_mapping(source, destination)
        for property_name, _ in parse_order_by(order_by):
            if not property_name or property_name not in mapping:
                logger.debug(f"Unknown sort field {property_name!r} for {source.__name__}")
                return False
        return True


property_mapping_service = PropertyMappingService()
property_mapping_service.register(AuthorDto, Author, PropertyMapping(_author_property_mapping))
