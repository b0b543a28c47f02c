from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger("chichat.distance")

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"
METERS_PER_MILE = 1609.34


class DistanceResolver:
    """Turn a free-text destination into one-way driving miles via Google Directions."""

    def __init__(
        self,
        api_key: str,
        origin: str = "Marion, VA",
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        endpoint: str = DIRECTIONS_URL,
    ) -> None:
        """Purpose: Configure the resolver with credentials and a fixed origin.
        Inputs/Outputs: Inputs are API key, origin, timeout, optional session and
            endpoint; no return value.
        Side Effects / State: Creates a requests.Session when none is supplied.
        Dependencies: requests.
        Failure Modes: None at init; a blank key is reported on each resolve call.
        If Removed: Delivery quotes can never be computed.
        Testing Notes: Inject a fake session to avoid network calls.
        """
        self._api_key = api_key
        self._origin = origin
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._endpoint = endpoint

    @property
    def origin(self) -> str:
        return self._origin

    def resolve_one_way_miles(self, destination: str) -> Optional[float]:
        """Purpose: Look up the best route distance from origin to destination.
        Inputs/Outputs: Input is unsanitized destination text; output is unrounded
            miles, or None when the distance cannot be determined.
        Side Effects / State: One outbound HTTP GET; logs failure reasons.
        Dependencies: Google Directions API through the injected session.
        Failure Modes: Missing key, transport errors, timeouts, non-2xx status,
            non-JSON bodies and missing distance all return None.
        If Removed: The delivery-quote block is never produced.
        Testing Notes: Cover each None path plus a 96560 m route (~60 miles).
        """
        # Bail out early without credentials; no request is attempted.
        if not self._api_key:
            logger.error("GOOGLE_MAPS_API_KEY is not set.")
            return None

        params = {
            "origin": self._origin,
            "destination": destination,
            "key": self._api_key,
        }
        try:
            response = self._session.get(self._endpoint, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Directions request failed destination=%r error=%s", destination, exc)
            return None

        if not response.ok:
            logger.error(
                "Directions API error status=%s body=%s",
                response.status_code,
                (response.text or "")[:200],
            )
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("Directions API returned non-JSON body status=%s", response.status_code)
            return None

        meters = _first_leg_meters(data)
        if meters is None:
            logger.error("No distance found in Directions API response destination=%r", destination)
            return None
        return meters / METERS_PER_MILE


def _first_leg_meters(data: Any) -> Optional[float]:
    # routes[0].legs[0].distance.value, in meters
    if not isinstance(data, dict):
        return None
    routes = data.get("routes") or []
    if not isinstance(routes, list) or not routes or not isinstance(routes[0], dict):
        return None
    legs = routes[0].get("legs") or []
    if not isinstance(legs, list) or not legs or not isinstance(legs[0], dict):
        return None
    distance: Dict[str, Any] = legs[0].get("distance") or {}
    value = distance.get("value") if isinstance(distance, dict) else None
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return float(value)
