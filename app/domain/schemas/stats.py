from typing import List, Optional

from pydantic import Field

from app.domain.schemas.base import CamelModel, FiniteFloat


class CorrelationRequest(CamelModel):
    a: List[FiniteFloat]
    b: List[FiniteFloat]


class CorrelationResponse(CamelModel):
    correlation: float
    points: int


class DescribeRequest(CamelModel):
    values: List[FiniteFloat]
    lookback: int = Field(default=1, ge=1)


class DescribeResponse(CamelModel):
    count: int
    mean: Optional[float] = None
    median: Optional[float] = None
    stddev: Optional[float] = None
    zscore: Optional[float] = None
    pct_change: Optional[float] = None
