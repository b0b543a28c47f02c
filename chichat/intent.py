"""Surface-level intent detection over raw customer text.

Each signal is an independent function so intents compose freely and can be
tested in isolation. Nothing here raises; a miss is a negative/None signal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

NAME_RE = re.compile(r"my name is\s+([A-Za-z]+)|i['’]m\s+([A-Za-z]+)", re.IGNORECASE)
ROUND_TRIP_RE = re.compile(r"round\s*trip|both\s*ways|there\s*and\s*back", re.IGNORECASE)
DELIVERY_QUOTE_RE = re.compile(r"how much.*to\s+(.+)", re.IGNORECASE)

AVAILABILITY_PHRASES = [
    "available puppies",
    "do you have puppies",
    "any puppies available",
    "what puppies do you have",
    "what puppies are available",
    "any litters available",
    "any puppies right now",
]
AVAILABILITY_RE = re.compile("|".join(re.escape(p) for p in AVAILABILITY_PHRASES), re.IGNORECASE)


@dataclass(frozen=True)
class DetectedIntent:
    """Independent signals derived from one message."""
    disclosed_name: Optional[str] = None
    destination_text: Optional[str] = None
    is_round_trip: bool = False
    wants_availability: bool = False

    @property
    def wants_delivery_quote(self) -> bool:
        return self.destination_text is not None


def extract_disclosed_name(text: str) -> Optional[str]:
    """Purpose: Pull a first name out of "my name is X" / "I'm X".
    Inputs/Outputs: Input is raw text; output is the alphabetic token or None.
    Side Effects / State: None.
    Dependencies: NAME_RE.
    Failure Modes: Any alphabetic token after "I'm" is accepted ("I'm looking" -> "looking").
    If Removed: Names disclosed mid-conversation are never picked up.
    Testing Notes: Check both alternatives and the curly apostrophe.
    """
    match = NAME_RE.search(text or "")
    if not match:
        return None
    name = (match.group(1) or match.group(2) or "").strip()
    return name or None


def is_round_trip_request(text: str) -> bool:
    return bool(ROUND_TRIP_RE.search(text or ""))


def extract_delivery_destination(text: str) -> Optional[str]:
    """Return the destination of a "how much ... to <place>" question, or None."""
    match = DELIVERY_QUOTE_RE.search(text or "")
    if not match or not match.group(1):
        return None
    destination = re.sub(r"\?+$", "", match.group(1).strip()).strip()
    return destination or None


def is_availability_request(text: str) -> bool:
    return bool(AVAILABILITY_RE.search(text or ""))


def detect_intent(text: str) -> DetectedIntent:
    # Each predicate runs on the raw text; none depends on another's result.
    return DetectedIntent(
        disclosed_name=extract_disclosed_name(text),
        destination_text=extract_delivery_destination(text),
        is_round_trip=is_round_trip_request(text),
        wants_availability=is_availability_request(text),
    )
