"""Pydantic models for introspection results and catalog rows."""

import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TableInfo(BaseModel):
    """A table and its catalog comment."""

    table_name: str
    comment: str = ""


class LogicDBInfo(BaseModel):
    """Tables found under one schema, in catalog order."""

    schema_name: str
    table_info_list: List[TableInfo] = Field(default_factory=list)


class ColumnInfo(BaseModel):
    """A column with its data type and catalog comment."""

    column_name: str
    data_type: str = ""
    comment: str = ""


class TableColInfo(BaseModel):
    """Columns of one table, in catalog order."""

    table_name: str
    column_info_list: List[ColumnInfo] = Field(default_factory=list)


class Pagination(BaseModel):
    """Page request and result counters for table data queries.

    ``page_index`` is 1-based. ``total`` and ``page_count`` are outputs set
    by the query and stay None until the count query succeeds. A page index
    of 0 is read as the first page.
    """

    model_config = ConfigDict(validate_assignment=True)

    page_index: int = Field(default=1, ge=0, description="1-based page number")
    page_size: int = Field(default=10, ge=0, description="Rows per page")
    total: Optional[int] = Field(default=None, description="Rows in the table")
    page_count: Optional[int] = Field(default=None, description="Pages in the table")

    def get_offset(self) -> int:
        """Row offset of the requested page."""
        return (max(self.page_index, 1) - 1) * max(self.page_size, 0)

    def set_page_count(self) -> None:
        """Derive ``page_count`` from ``total`` and ``page_size``."""
        if not self.total or self.page_size <= 0:
            self.page_count = 0
            return
        self.page_count = math.ceil(self.total / self.page_size)


class CatalogTableRow(BaseModel):
    """One row of a table-listing catalog query."""

    table_schema: str
    table_name: str
    comments: str = ""

    @field_validator("comments", mode="before")
    @classmethod
    def _null_comment(cls, value: Optional[str]) -> str:
        return "" if value is None else value


class CatalogColumnRow(BaseModel):
    """One row of a column-listing catalog query."""

    table_schema: str
    table_name: str
    column_name: str
    data_type: str = ""
    comments: str = ""

    @field_validator("data_type", "comments", mode="before")
    @classmethod
    def _null_text(cls, value: Optional[str]) -> str:
        return "" if value is None else value
