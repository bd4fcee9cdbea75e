from typing import Annotated, Optional

from fastapi import Query

from library_api.config import settings


class AuthorsResourceParameters:
    """Paging, filtering, sorting and field-selection options for GET /api/authors.

    Used as a FastAPI dependency, so the query-string names are the public
    camelCase ones. Page size is clamped to ``settings.max_page_size`` when
    assigned; page size and page number never drop below 1.
    """

    def __init__(
        self,
        genre: Annotated[Optional[str], Query(description="Exact genre to filter on")] = None,
        search_query: Annotated[Optional[str], Query(alias="searchQuery", description="Substring searched in name and genre")] = None,
        order_by: Annotated[Optional[str], Query(alias="orderBy", description="Comma-separated fields, each optionally suffixed with ' desc'")] = "Name",
        page_number: Annotated[int, Query(alias="pageNumber", description="Page number, starting at 1")] = 1,
        page_size: Annotated[int, Query(alias="pageSize", description="Items per page")] = settings.default_page_size,
        fields: Annotated[Optional[str], Query(description="Comma-separated fields to include in each item")] = None,
    ):
        self.genre = genre
        self.search_query = search_query
        self.order_by = order_by
        self.page_number = page_number
        self.page_size = page_size
        self.fields = fields

    @property
    def page_number(self) -> int:
        return self._page_number

    @page_number.setter
    def page_number(self, value: int) -> None:
        self._page_number = max(value, 1)

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: int) -> None:
        self._page_size = max(min(value, settings.max_page_size), 1)

    def to_query_params(self, page_number: Optional[int] = None) -> dict:
        """Public query-string parameters for a link, omitting absent ones."""
        params = {
            "fields": self.fields,
            "orderBy": self.order_by,
            "searchQuery": self.search_query,
            "genre": self.genre,
            "pageNumber": page_number if page_number is not None else self.page_number,
            "pageSize": self.page_size,
        }
        return {key: value for key, value in params.items() if value is not None}
