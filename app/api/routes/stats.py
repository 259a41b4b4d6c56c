"""
Statistics API Routes
"""

from fastapi import APIRouter

from app.domain.indicators import statistics
from app.domain.schemas.stats import (
    CorrelationRequest,
    CorrelationResponse,
    DescribeRequest,
    DescribeResponse,
)

router = APIRouter()


@router.post("/stats/correlation", response_model=CorrelationResponse)
async def correlation(payload: CorrelationRequest):
    """Pearson correlation over the overlapping prefix of two series"""
    return CorrelationResponse(
        correlation=statistics.correlation(payload.a, payload.b),
        points=min(len(payload.a), len(payload.b)),
    )


@router.post("/stats/describe", response_model=DescribeResponse)
async def describe(payload: DescribeRequest):
    values = payload.values
    return DescribeResponse(
        count=len(values),
        mean=statistics.mean(values),
        median=statistics.median(values),
        stddev=statistics.stddev(values),
        zscore=statistics.zscore(values),
        pct_change=statistics.pct_change(values, payload.lookback),
    )
