"""Live puppy availability from the MongoDB puppies collection.

Role:
    InventoryStore owns the pymongo connection and the one query the assistant
    needs. AvailabilityFetcher turns the query result into the narrative block
    consumed by generation, degrading to a fixed fallback block on any failure.

Outcomes of AvailabilityFetcher.build_context (exactly one per call):
    - listing:   one prose line per available puppy plus answering guidance.
    - error:     the store raised PyMongoError (unreachable, timeout, bad query).
    - empty:     the query succeeded with zero rows.
    - unexpected: anything else, including a missing MONGO_URI.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from bson.decimal128 import Decimal128
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .delivery import round_half_up

logger = logging.getLogger("chichat.inventory")

AVAILABLE_STATUS = "Available"
PUPPY_FIELDS = ["puppy_name", "call_name", "sex", "color", "pattern", "price", "dob", "status"]

QUERY_ERROR_CONTEXT = """
AVAILABLE PUPPIES CONTEXT:
There was an error reading available puppies from the database.
If this happens, reply gently that you are not able to see current availability right now and suggest the customer check the Available Puppies page or contact the breeder directly.
"""

NONE_AVAILABLE_CONTEXT = """
AVAILABLE PUPPIES CONTEXT:
The database currently shows no puppies with status "Available".
When the user asks if there are puppies available, answer kindly that there are no puppies listed as available right now, and invite them to ask about upcoming litters or the waitlist.
"""

UNEXPECTED_ERROR_CONTEXT = """
AVAILABLE PUPPIES CONTEXT:
There was an unexpected error when trying to look up available puppies.
Please answer by apologizing that you can't see live availability right now and suggest they check the breeder's website or contact them directly.
"""

LISTING_CONTEXT_TEMPLATE = """
AVAILABLE PUPPIES CONTEXT:
Here are the puppies currently marked as "Available" in the puppies collection:

<<LINES>>

When someone asks "Do you have puppies?" or "What puppies are available?":
- Give a short, friendly answer using this list.
- Do NOT dump the full list every time. A simple reply like
  "Yes, we currently have 3 puppies available, including [one example]."
  is enough unless they ask for more detail.
- Offer to describe a specific puppy if they want, and gently mention
  that photos and full details are available on the Available Puppies
  page of the <<BUSINESS_NAME>> website.
"""


@dataclass
class PuppyListing:
    """One available puppy; every field may be missing in the store."""
    puppy_name: Optional[str] = None
    call_name: Optional[str] = None
    sex: Optional[str] = None
    color: Optional[str] = None
    pattern: Optional[str] = None
    dob: Optional[str] = None
    price: Optional[float] = None
    status: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "PuppyListing":
        return cls(
            puppy_name=_clean_text(doc.get("puppy_name")),
            call_name=_clean_text(doc.get("call_name")),
            sex=_clean_text(doc.get("sex")),
            color=_clean_text(doc.get("color")),
            pattern=_clean_text(doc.get("pattern")),
            dob=_format_dob(doc.get("dob")),
            price=_clean_price(doc.get("price")),
            status=_clean_text(doc.get("status")),
        )


class InventoryStore:
    """Lazy pymongo access to the puppies collection."""

    def __init__(
        self,
        mongo_uri: str,
        db_name: str = "swva_chihuahua",
        collection_name: str = "puppies",
        timeout_ms: int = 5000,
        collection: Optional[Collection] = None,
    ) -> None:
        # The client is created on first query so the app starts without a database.
        self._mongo_uri = mongo_uri
        self._db_name = db_name
        self._collection_name = collection_name
        self._timeout_ms = timeout_ms
        self._collection = collection
        self._lock = threading.Lock()

    def _get_collection(self) -> Collection:
        """Purpose: Return the puppies collection, connecting on first use.
        Inputs/Outputs: No inputs; returns a pymongo Collection.
        Side Effects / State: Creates and caches a MongoClient.
        Dependencies: pymongo.MongoClient with server selection and socket timeouts.
        Failure Modes: Raises ValueError when MONGO_URI is not configured.
        If Removed: Availability lookups have no backing store.
        Testing Notes: Pass a fake collection to the constructor instead.
        """
        with self._lock:
            if self._collection is not None:
                return self._collection
            if not self._mongo_uri:
                raise ValueError("MONGO_URI is not set. Please set it in the environment or .env file.")
            client: MongoClient = MongoClient(
                self._mongo_uri,
                serverSelectionTimeoutMS=self._timeout_ms,
                socketTimeoutMS=self._timeout_ms,
            )
            self._collection = client[self._db_name][self._collection_name]
            return self._collection

    def list_available(self) -> List[Dict[str, Any]]:
        """Return raw documents with status "Available", oldest birth date first."""
        collection = self._get_collection()
        projection = {field: 1 for field in PUPPY_FIELDS}
        projection["_id"] = 0
        cursor = collection.find({"status": AVAILABLE_STATUS}, projection).sort("dob", ASCENDING)
        return list(cursor)


class AvailabilityFetcher:
    """Fetch available puppies fresh per request and render them as prose."""

    def __init__(self, store: InventoryStore, business_name: str = "Southwest Virginia Chihuahua") -> None:
        self._store = store
        self._business_name = business_name

    def fetch_available(self) -> List[PuppyListing]:
        """Fetch the current listing; store errors propagate to the caller."""
        return [PuppyListing.from_document(doc) for doc in self._store.list_available()]

    def build_context(self) -> str:
        """Purpose: Produce the availability block for the directive payload.
        Inputs/Outputs: No inputs; returns one of the listing/error/empty/unexpected blocks.
        Side Effects / State: One store query per call; logs failures.
        Dependencies: InventoryStore.list_available and render_listing_lines.
        Failure Modes: Never raises; every failure maps to a fallback block.
        If Removed: Availability questions are answered without live data.
        Testing Notes: Raise PyMongoError, return [], and raise RuntimeError from a fake store.
        """
        try:
            listings = self.fetch_available()
            if not listings:
                logger.info("availability rows=0")
                return NONE_AVAILABLE_CONTEXT
            logger.info("availability rows=%s", len(listings))
            lines = render_listing_lines(listings)
            return LISTING_CONTEXT_TEMPLATE.replace("<<LINES>>", "\n".join(lines)).replace(
                "<<BUSINESS_NAME>>", self._business_name
            )
        except PyMongoError as exc:
            logger.error("Puppies query error: %s", exc)
            return QUERY_ERROR_CONTEXT
        except Exception:
            logger.exception("Unexpected error building available puppies context")
            return UNEXPECTED_ERROR_CONTEXT


def render_listing_line(listing: PuppyListing, index: int) -> str:
    """Render one puppy as "- Name (sex, color, pattern, born dob) – around $price"."""
    display_name = listing.puppy_name or listing.call_name or f"Puppy #{index + 1}"
    sex = listing.sex or "unknown sex"
    color = listing.color or "unknown color"
    pattern = f", {listing.pattern}" if listing.pattern else ""
    dob = f", born {listing.dob}" if listing.dob else ""
    price = f" – around ${round_half_up(listing.price)}" if listing.price is not None else ""
    return f"- {display_name} ({sex}, {color}{pattern}{dob}){price}"


def render_listing_lines(listings: List[PuppyListing]) -> List[str]:
    return [render_listing_line(listing, idx) for idx, listing in enumerate(listings)]


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean_price(value: Any) -> Optional[float]:
    # Only numbers count; strings, bools and NaN are treated as no price.
    if isinstance(value, Decimal128):
        value = value.to_decimal()
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        return None
    price = float(value)
    if math.isnan(price) or math.isinf(price):
        return None
    return price


def _format_dob(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _clean_text(value)
