"""Tests for puppy availability lookup and rendering."""

from datetime import datetime

import pytest
from bson.decimal128 import Decimal128
from pymongo import ASCENDING
from pymongo.errors import ServerSelectionTimeoutError

from chichat.inventory import (
    NONE_AVAILABLE_CONTEXT,
    QUERY_ERROR_CONTEXT,
    UNEXPECTED_ERROR_CONTEXT,
    AvailabilityFetcher,
    InventoryStore,
    PuppyListing,
    render_listing_line,
)
from tests.conftest import FakeCollection


def _docs():
    return [
        {"puppy_name": "Bean", "sex": "Male", "color": "Fawn", "dob": "2026-08-01", "price": 1800, "status": "Available"},
        {"call_name": "Pixie", "sex": "Female", "color": "Chocolate", "pattern": "merle", "dob": "2026-07-15", "price": 2199.5, "status": "Available"},
        {"puppy_name": "Taco", "sex": "Male", "color": "Black", "dob": "2026-06-01", "status": "Sold"},
    ]


class TestInventoryStore:
    def test_queries_available_sorted_by_dob(self):
        collection = FakeCollection(_docs())
        store = InventoryStore(mongo_uri="", collection=collection)
        rows = store.list_available()
        query, projection = collection.find_calls[0]
        assert query == {"status": "Available"}
        assert projection["_id"] == 0
        assert set(k for k, v in projection.items() if v) == {
            "puppy_name", "call_name", "sex", "color", "pattern", "price", "dob", "status"
        }
        assert collection.last_cursor.sort_args == ("dob", ASCENDING)
        assert [row.get("puppy_name") or row.get("call_name") for row in rows] == ["Pixie", "Bean"]

    def test_missing_uri_raises_value_error(self):
        store = InventoryStore(mongo_uri="")
        with pytest.raises(ValueError, match="MONGO_URI"):
            store.list_available()


class TestRenderListingLine:
    def test_full_record(self):
        listing = PuppyListing(puppy_name="Bean", sex="Male", color="Fawn", pattern="sable", dob="2026-08-01", price=1800)
        assert render_listing_line(listing, 0) == "- Bean (Male, Fawn, sable, born 2026-08-01) – around $1800"

    def test_name_falls_back_to_call_name_then_position(self):
        assert render_listing_line(PuppyListing(call_name="Pixie"), 0).startswith("- Pixie (")
        assert render_listing_line(PuppyListing(), 2) == "- Puppy #3 (unknown sex, unknown color)"

    def test_price_is_rounded_half_up(self):
        line = render_listing_line(PuppyListing(puppy_name="Bean", sex="Male", color="Fawn", price=2199.5), 0)
        assert line.endswith("– around $2200")

    def test_absent_fields_are_omitted(self):
        line = render_listing_line(PuppyListing(puppy_name="Bean", sex="Male", color="Fawn"), 0)
        assert line == "- Bean (Male, Fawn)"
        assert "None" not in line


class TestPuppyListingFromDocument:
    def test_cleans_values(self):
        listing = PuppyListing.from_document(
            {"puppy_name": "  ", "call_name": "Pip", "price": float("nan"), "dob": datetime(2026, 5, 4, 12, 0)}
        )
        assert listing.puppy_name is None
        assert listing.call_name == "Pip"
        assert listing.price is None
        assert listing.dob == "2026-05-04"

    def test_non_numeric_price_is_absent(self):
        assert PuppyListing.from_document({"price": "1800"}).price is None
        assert PuppyListing.from_document({"price": True}).price is None

    def test_decimal128_price(self):
        assert PuppyListing.from_document({"price": Decimal128("1999.99")}).price == pytest.approx(1999.99)


class TestAvailabilityFetcher:
    def test_success_lists_each_puppy_in_dob_order(self):
        fetcher = AvailabilityFetcher(InventoryStore("", collection=FakeCollection(_docs())))
        context = fetcher.build_context()
        assert "AVAILABLE PUPPIES CONTEXT:" in context
        assert "- Pixie (Female, Chocolate, merle, born 2026-07-15) – around $2200" in context
        assert "- Bean (Male, Fawn, born 2026-08-01) – around $1800" in context
        assert context.index("Pixie") < context.index("Bean")
        assert "Taco" not in context
        assert "Southwest Virginia Chihuahua website" in context

    def test_zero_rows_uses_waitlist_fallback(self):
        fetcher = AvailabilityFetcher(InventoryStore("", collection=FakeCollection([])))
        context = fetcher.build_context()
        assert context == NONE_AVAILABLE_CONTEXT
        assert "waitlist" in context
        assert "Here are the puppies" not in context

    def test_store_error_uses_cannot_see_fallback(self):
        collection = FakeCollection(error=ServerSelectionTimeoutError("no servers"))
        fetcher = AvailabilityFetcher(InventoryStore("", collection=collection))
        context = fetcher.build_context()
        assert context == QUERY_ERROR_CONTEXT
        assert "not able to see current availability right now" in context

    def test_unexpected_error_uses_generic_fallback(self):
        collection = FakeCollection(error=RuntimeError("boom"))
        fetcher = AvailabilityFetcher(InventoryStore("", collection=collection))
        assert fetcher.build_context() == UNEXPECTED_ERROR_CONTEXT

    def test_missing_configuration_is_unexpected_not_query_error(self):
        fetcher = AvailabilityFetcher(InventoryStore(""))
        assert fetcher.build_context() == UNEXPECTED_ERROR_CONTEXT

    def test_fetches_fresh_each_time(self):
        collection = FakeCollection(_docs())
        fetcher = AvailabilityFetcher(InventoryStore("", collection=collection))
        fetcher.build_context()
        fetcher.build_context()
        assert len(collection.find_calls) == 2
