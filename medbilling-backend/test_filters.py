from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from filters import Contains, DateRange, Equals, Filter, InStock, NumberRange, Pagination, TextSearch


def test_filter_is_a_conjunction(store, by_name):
    paracetamol = by_name(store, "Paracetamol 500mg")
    amoxicillin = by_name(store, "Amoxicillin 250mg")

    query = Filter.of(TextSearch(term="PAIN"), NumberRange(field="price", lte=1))
    assert query.matches(paracetamol)
    assert not query.matches(amoxicillin)

    # an empty filter matches everything
    assert Filter().matches(amoxicillin)


def test_predicates(store, by_name):
    ibuprofen = by_name(store, "Ibuprofen 400mg")

    assert Equals(field="is_active", value=True).matches(ibuprofen)
    assert Contains(field="category", value="nsa").matches(ibuprofen)
    assert not Contains(field="category", value="analgesic").matches(ibuprofen)
    assert TextSearch(term="anti-inflammatory").matches(ibuprofen)
    assert not TextSearch(term="HealthCorp").matches(ibuprofen)
    assert NumberRange(field="price", gte=1.25, lte=1.25).matches(ibuprofen)
    assert not NumberRange(field="price", gte=1.26).matches(ibuprofen)
    assert InStock().matches(ibuprofen)
    assert not InStock().matches(ibuprofen.model_copy(update={"stock": 0}))


def test_date_range_is_inclusive_and_accepts_naive_bounds(store, by_name):
    medicine = by_name(store, "Paracetamol 500mg")
    created = medicine.created_at

    assert DateRange(gte=created, lte=created).matches(medicine)
    assert not DateRange(gte=created + timedelta(seconds=1)).matches(medicine)

    naive = created.astimezone().replace(tzinfo=None)
    assert DateRange(lte=naive).matches(medicine)
    assert DateRange(gte=naive).gte.tzinfo is not None


def test_filter_validates_from_tagged_dicts():
    query = Filter.model_validate({
        "predicates": [
            {"kind": "equals", "field": "status", "value": "paid"},
            {"kind": "date_range", "gte": datetime(2026, 10, 1, tzinfo=timezone.utc)},
        ],
    })
    assert isinstance(query.predicates[0], Equals)
    assert isinstance(query.predicates[1], DateRange)

    with pytest.raises(ValidationError):
        Filter.model_validate({"predicates": [{"kind": "regex", "field": "name"}]})


def test_pagination_arithmetic():
    pagination = Pagination(page=3, limit=4)
    assert pagination.skip == 8
    assert pagination.apply(list(range(10))) == [8, 9]
    assert Pagination(page=4, limit=4).apply(list(range(10))) == []
    assert pagination.pages(10) == 3
    assert pagination.pages(0) == 0

    defaults = Pagination()
    assert (defaults.page, defaults.limit) == (1, 10)

    with pytest.raises(ValidationError):
        Pagination(page=0)
