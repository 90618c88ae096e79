"""Recommendations router — venue recommendations for a destination."""

import logging

from fastapi import APIRouter, Depends

from venuescout.schemas.recommendation import RecommendationMetricsResponse, RecommendationRequest
from venuescout.services.recommendation_engine import RecommendationEngine, recommendation_engine

logger = logging.getLogger(__name__)

router = APIRouter()


def get_recommendation_engine() -> RecommendationEngine:
    return recommendation_engine


@router.post("")
async def create_recommendations(
    req: RecommendationRequest,
    engine: RecommendationEngine = Depends(get_recommendation_engine),
):
    """Generate ranked venue recommendations.

    Pipeline failures are reported in the body (success=false) rather than
    as HTTP errors; only malformed requests are rejected (422).
    """
    response = await engine.generate_recommendations(req)
    return response.to_dict()


@router.get("/metrics", response_model=RecommendationMetricsResponse)
async def get_metrics(engine: RecommendationEngine = Depends(get_recommendation_engine)):
    return engine.get_metrics()


@router.post("/reset")
async def reset_engine(engine: RecommendationEngine = Depends(get_recommendation_engine)):
    return {"status": "reset", **engine.reset()}
