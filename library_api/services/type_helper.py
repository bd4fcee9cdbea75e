from typing import Optional

from pydantic import BaseModel

from library_api.services.data_shaper import shape_fields_for, split_fields


class TypeHelperService:
    """Checks field-selection expressions against a transfer-object shape."""

    def type_has_properties(self, shape: type[BaseModel], fields: Optional[str]) -> bool:
        """True when every comma-separated name in ``fields`` exists on ``shape``.

        Matching is case-insensitive. An empty or absent expression is valid.
        """
        table = shape_fields_for(shape)
        for field_name in split_fields(fields):
            if not field_name or field_name not in table:
                return False
        return True


type_helper_service = TypeHelperService()
