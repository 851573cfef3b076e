from typing import List

from fastapi import APIRouter, Depends, Query

from brandpulse.routes.deps import get_storage
from brandpulse.schemas import DashboardMetrics, SentimentTrendPoint, SourceVolume
from brandpulse.services import metrics
from brandpulse.storage.base import Storage

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/metrics", response_model=DashboardMetrics)
async def dashboard_metrics(storage: Storage = Depends(get_storage)):
    return metrics.dashboard_metrics(await storage.list_mentions())


@router.get("/sentiment-trend", response_model=List[SentimentTrendPoint])
async def sentiment_trend(
    days: int = Query(7, ge=1, le=365),
    storage: Storage = Depends(get_storage),
):
    return metrics.sentiment_trend(await storage.list_mentions(), days=days)


@router.get("/source-volume", response_model=List[SourceVolume])
async def source_volume(storage: Storage = Depends(get_storage)):
    return metrics.source_volume(await storage.list_mentions())
