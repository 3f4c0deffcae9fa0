"""
Yield API Routes
Current yield curve and cached historical series
"""

from fastapi import APIRouter, Depends, Query

from treasury_app.api.dependencies import get_yield_service
from treasury_app.services.yield_service import YieldService

router = APIRouter()


@router.get("")
async def get_current_yields(yields: YieldService = Depends(get_yield_service)):
    snapshot = await yields.get_latest_yields()
    return snapshot.to_dict()


@router.get("/historical")
async def get_historical_yields(
    period: str = Query("3M", description="1W, 1M, 3M, 6M, 1Y, 5Y, 10Y or 30Y"),
    yields: YieldService = Depends(get_yield_service),
):
    series = await yields.get_historical_yields(period)
    return series.to_dict()
