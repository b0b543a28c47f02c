"""Shared test fixtures and fakes for external services."""

from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import pytest

from chichat.config import Settings
from chichat.context_assembler import ContextAssembler
from chichat.inventory import AvailabilityFetcher, InventoryStore
from chichat.knowledge.knowledge_store import KnowledgeStore

PACKAGE_DIR = Path(__file__).resolve().parents[1] / "chichat"


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "", json_error: bool = False):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self._json_error = json_error

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._json_error:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Records GET calls and returns a canned response or raises."""

    def __init__(self, response: Optional[FakeResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def get(self, url: str, params: Optional[dict] = None, timeout: Optional[float] = None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class FakeCursor:
    def __init__(self, docs: list[dict]):
        self._docs = docs
        self.sort_args: Optional[tuple] = None

    def sort(self, key: str, direction: int):
        self.sort_args = (key, direction)
        self._docs = sorted(self._docs, key=lambda doc: str(doc.get(key) or ""), reverse=direction < 0)
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    """Enough of pymongo.collection.Collection for InventoryStore."""

    def __init__(self, docs: Optional[list[dict]] = None, error: Optional[Exception] = None):
        self.docs = docs or []
        self.error = error
        self.find_calls: list[tuple] = []
        self.last_cursor: Optional[FakeCursor] = None

    def find(self, query: dict, projection: Optional[dict] = None):
        self.find_calls.append((query, projection))
        if self.error is not None:
            raise self.error
        matched = [doc for doc in self.docs if all(doc.get(k) == v for k, v in query.items())]
        self.last_cursor = FakeCursor(matched)
        return self.last_cursor


class FakeResolver:
    """DistanceResolver stand-in returning fixed miles."""

    def __init__(self, miles: Optional[float] = None, error: Optional[Exception] = None, origin: str = "Marion, VA"):
        self.miles = miles
        self.error = error
        self.origin = origin
        self.destinations: list[str] = []

    def resolve_one_way_miles(self, destination: str) -> Optional[float]:
        self.destinations.append(destination)
        if self.error is not None:
            raise self.error
        return self.miles


class FakeGenerator:
    def __init__(self, reply: str = "Hi there!", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate_reply(self, system_instruction: str, user_message: str) -> str:
        self.calls.append((system_instruction, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gemini_api_key="test-gemini-key",
        gemini_model="gemini-1.5-flash",
        gemini_max_output_tokens=600,
        gemini_temperature=0.4,
        gemini_timeout_seconds=5.0,
        google_maps_api_key="test-maps-key",
        delivery_origin="Marion, VA",
        directions_timeout_seconds=5.0,
        mongo_uri="",
        mongo_db_name="swva_chihuahua",
        mongo_puppies_collection="puppies",
        mongo_timeout_ms=1000,
        business_name="Southwest Virginia Chihuahua",
        prompts_dir=PACKAGE_DIR / "prompts",
        knowledge_path=PACKAGE_DIR / "knowledge" / "chi_knowledge.md",
        log_level="INFO",
    )


@pytest.fixture
def settings_without_key(settings: Settings) -> Settings:
    return replace(settings, gemini_api_key="")


def make_assembler(
    resolver: Optional[FakeResolver] = None,
    collection: Optional[FakeCollection] = None,
) -> ContextAssembler:
    """Assembler wired to fakes and the bundled persona/knowledge files."""
    store = InventoryStore(mongo_uri="", collection=collection) if collection is not None else InventoryStore("")
    return ContextAssembler(
        distance_resolver=resolver or FakeResolver(),
        availability_fetcher=AvailabilityFetcher(store),
        knowledge_store=KnowledgeStore(PACKAGE_DIR / "knowledge" / "chi_knowledge.md"),
        prompts_dir=PACKAGE_DIR / "prompts",
    )

