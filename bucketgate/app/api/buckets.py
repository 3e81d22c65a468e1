"""Admission and bucket inspection API."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from bucketgate.app.exceptions import BucketNotFoundError
from bucketgate.app.limiter.models import BucketState
from bucketgate.app.limiter.store import LimiterStore, get_limiter_store

router = APIRouter(prefix="/v1", tags=["buckets"])


class BucketResponse(BaseModel):
    """Bucket state response."""

    level: float
    last_update: float

    @classmethod
    def from_state(cls, bucket: BucketState) -> "BucketResponse":
        return cls(level=bucket.level, last_update=bucket.last_update)


class AdmitRequest(BaseModel):
    """Admission request."""

    identity: str = Field(..., min_length=1, max_length=512)
    timestamp: Optional[float] = None


class AdmitResponse(BaseModel):
    """Admission decision with the identity's stored bucket."""

    identity: str
    admitted: bool
    bucket: BucketResponse


class LimiterResponse(BaseModel):
    """Limiter configuration and size."""

    capacity: float
    leak_rate: float
    identities: int


class PruneRequest(BaseModel):
    """Idle bucket sweep request."""

    older_than: float


class PruneResponse(BaseModel):
    removed: int


@router.post("/admit", response_model=AdmitResponse)
async def admit(
    body: AdmitRequest,
    store: LimiterStore = Depends(get_limiter_store),
) -> AdmitResponse:
    """Evaluate one request for an identity.

    Rejection is a normal outcome and still answers 200.
    """
    result = await store.admit(body.identity, body.timestamp)
    bucket = result.state.get_bucket(body.identity)
    return AdmitResponse(
        identity=body.identity,
        admitted=result.admitted,
        bucket=BucketResponse.from_state(bucket),
    )


@router.get("/buckets/{identity}", response_model=BucketResponse)
async def get_bucket(
    identity: str,
    store: LimiterStore = Depends(get_limiter_store),
) -> BucketResponse:
    """Stored bucket for an identity, without draining."""
    bucket = store.get_bucket(identity)
    if bucket is None:
        raise BucketNotFoundError(identity)
    return BucketResponse.from_state(bucket)


@router.get("/buckets/{identity}/projected", response_model=BucketResponse)
async def get_projected_bucket(
    identity: str,
    at: Optional[float] = Query(default=None, description="Timestamp to project to"),
    store: LimiterStore = Depends(get_limiter_store),
) -> BucketResponse:
    """Bucket for an identity drained to a timestamp. Read only."""
    return BucketResponse.from_state(store.project_bucket(identity, at))


@router.get("/limiter", response_model=LimiterResponse)
async def get_limiter(store: LimiterStore = Depends(get_limiter_store)) -> LimiterResponse:
    snapshot = store.snapshot
    return LimiterResponse(
        capacity=snapshot.capacity,
        leak_rate=snapshot.leak_rate,
        identities=len(snapshot),
    )


@router.post("/limiter/prune", response_model=PruneResponse, status_code=status.HTTP_200_OK)
async def prune(
    body: PruneRequest,
    store: LimiterStore = Depends(get_limiter_store),
) -> PruneResponse:
    """Drop identities idle since before older_than."""
    return PruneResponse(removed=await store.prune(body.older_than))
