"""Delivery fee policy and quote construction.

Policy: the first 50 one-way miles from the breeder are free. Past the free
zone every one-way mile costs $1.25, with a $75 minimum for any paid trip.
A round trip costs exactly twice the one-way fee.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

FREE_MILES = 50.0
RATE_PER_MILE = 1.25
MINIMUM_PAID_FEE = 75.0


@dataclass(frozen=True)
class DeliveryQuote:
    """Unrounded delivery figures for one resolved destination."""
    one_way_miles: float
    one_way_fee: float
    round_trip_miles: Optional[float] = None
    round_trip_fee: Optional[float] = None

    @property
    def is_round_trip(self) -> bool:
        return self.round_trip_fee is not None


def calculate_delivery_fee(one_way_miles: float) -> float:
    """Purpose: Apply the mileage policy to a one-way distance.
    Inputs/Outputs: Input is one-way miles (>= 0); output is the fee in dollars.
    Side Effects / State: None; pure function.
    Dependencies: FREE_MILES, RATE_PER_MILE and MINIMUM_PAID_FEE.
    Failure Modes: None; total over non-negative input.
    If Removed: Delivery quotes cannot be priced.
    Testing Notes: 50 -> 0, 60 -> 75 (minimum), 200 -> 187.5.
    """
    if one_way_miles <= FREE_MILES:
        return 0.0
    fee = (one_way_miles - FREE_MILES) * RATE_PER_MILE
    return max(MINIMUM_PAID_FEE, fee)


def quote_delivery(one_way_miles: float, round_trip: bool = False) -> DeliveryQuote:
    """Build a quote; round-trip figures double the one-way fee, not the mileage input."""
    one_way_fee = calculate_delivery_fee(one_way_miles)
    if not round_trip:
        return DeliveryQuote(one_way_miles=one_way_miles, one_way_fee=one_way_fee)
    return DeliveryQuote(
        one_way_miles=one_way_miles,
        one_way_fee=one_way_fee,
        round_trip_miles=one_way_miles * 2,
        round_trip_fee=one_way_fee * 2,
    )


def round_half_up(value: float) -> int:
    # 87.5 -> 88, 12.5 -> 13; built-in round() would give banker's rounding.
    return int(math.floor(value + 0.5))
