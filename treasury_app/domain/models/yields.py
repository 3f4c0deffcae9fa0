"""
Domain Models - Yield Curve Data
In-memory snapshots built from the Treasury feed
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional


HISTORICAL_PERIODS: List[str] = ["1W", "1M", "3M", "6M", "1Y", "5Y", "10Y", "30Y"]
HISTORICAL_TERMS: List[str] = ["10Y", "5Y", "2Y"]


@dataclass(frozen=True)
class YieldPoint:
    term: str
    rate: Optional[Decimal]


@dataclass(frozen=True)
class YieldSnapshot:
    """Most recent feed entry: one rate per term"""
    date: date
    yields: List[YieldPoint]

    def rate_for(self, term: str) -> Optional[Decimal]:
        for point in self.yields:
            if point.term == term:
                return point.rate
        return None

    def to_dict(self) -> Dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "yields": [
                {"term": p.term, "rate": float(p.rate) if p.rate is not None else None}
                for p in self.yields
            ],
        }


@dataclass(frozen=True)
class HistoricalYieldPoint:
    date: date
    ten_year: Optional[Decimal]
    five_year: Optional[Decimal]
    two_year: Optional[Decimal]

    def to_dict(self) -> Dict[str, object]:
        def _num(value: Optional[Decimal]) -> Optional[float]:
            return float(value) if value is not None else None

        return {
            "date": self.date.isoformat(),
            "10Y": _num(self.ten_year),
            "5Y": _num(self.five_year),
            "2Y": _num(self.two_year),
        }


@dataclass(frozen=True)
class HistoricalSeries:
    period: str
    start_date: date
    end_date: date
    data: List[HistoricalYieldPoint]
    terms: List[str] = field(default_factory=lambda: list(HISTORICAL_TERMS))

    def to_dict(self) -> Dict[str, object]:
        return {
            "period": self.period,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "terms": list(self.terms),
            "data": [point.to_dict() for point in self.data],
        }
