# filters.py
"""
Query building blocks for the DocumentStore.

A ``Filter`` is a conjunction of predicates. Every predicate is a small
pydantic model tagged by ``kind`` so filters can be built from code or
validated from plain dicts:

    Filter.of(
        Equals(field="is_active", value=True),
        TextSearch(term="pain"),
        NumberRange(field="price", gte=1, lte=2),
    )
"""

import math
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


def local_time(value: Optional[datetime]) -> Optional[datetime]:
    """Make ``value`` timezone aware; naive datetimes are read as local time."""
    if value is None or value.tzinfo is not None:
        return value
    return value.astimezone()


class Equals(BaseModel):
    kind: Literal["equals"] = "equals"
    field: str
    value: Any

    def matches(self, record) -> bool:
        return getattr(record, self.field) == self.value


class Contains(BaseModel):
    """Case-insensitive substring match on a text field."""

    kind: Literal["contains"] = "contains"
    field: str
    value: str

    def matches(self, record) -> bool:
        return self.value.lower() in (getattr(record, self.field) or "").lower()


class TextSearch(BaseModel):
    """Matches when ``term`` occurs in any of the record's search fields."""

    kind: Literal["text"] = "text"
    term: str

    def matches(self, record) -> bool:
        term = self.term.lower()
        return any(term in (getattr(record, name) or "").lower() for name in record.search_fields)


class NumberRange(BaseModel):
    kind: Literal["number_range"] = "number_range"
    field: str
    gte: Optional[float] = None
    lte: Optional[float] = None

    def matches(self, record) -> bool:
        value = getattr(record, self.field)
        if self.gte is not None and value < self.gte:
            return False
        if self.lte is not None and value > self.lte:
            return False
        return True


class DateRange(BaseModel):
    kind: Literal["date_range"] = "date_range"
    field: str = "created_at"
    gte: Optional[datetime] = None
    lte: Optional[datetime] = None

    @field_validator("gte", "lte")
    @classmethod
    def aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return local_time(v)

    def matches(self, record) -> bool:
        value = local_time(getattr(record, self.field))
        if self.gte is not None and value < self.gte:
            return False
        if self.lte is not None and value > self.lte:
            return False
        return True


class InStock(BaseModel):
    kind: Literal["in_stock"] = "in_stock"
    field: str = "stock"

    def matches(self, record) -> bool:
        return getattr(record, self.field) > 0


Predicate = Annotated[
    Union[Equals, Contains, TextSearch, NumberRange, DateRange, InStock],
    Field(discriminator="kind"),
]


class Filter(BaseModel):
    predicates: List[Predicate] = []

    @classmethod
    def of(cls, *predicates) -> "Filter":
        return cls(predicates=list(predicates))

    def and_(self, *predicates) -> "Filter":
        return Filter(predicates=[*self.predicates, *predicates])

    def matches(self, record) -> bool:
        return all(predicate.matches(record) for predicate in self.predicates)


class Pagination(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit)

    def apply(self, records: list) -> list:
        return records[self.skip:self.skip + self.limit]
