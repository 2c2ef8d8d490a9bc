"""
AI Analysis Routes
"""

from typing import List

from fastapi import APIRouter, Depends

from backend_forge.api.middleware.auth import get_current_user
from backend_forge.schemas.analysis import (
    AnalysisResult,
    AnalyzeDescriptionRequest,
    AnalyzeDescriptionResponse,
    ClarificationResponse,
    ScoreRequest,
    ScoreResponse,
    TechStackRecommendation,
    TechStackRecommendationRequest,
    TechStackRecommendationResponse,
)
from backend_forge.services.ai import DescriptionAnalysisService, get_analysis_service
from backend_forge.services.ai.analysis import (
    generate_clarification_questions,
    score_tech_stack_recommendation,
)
from backend_forge.utils import TokenSubject

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeDescriptionResponse)
async def analyze_description(
    request: AnalyzeDescriptionRequest,
    user: TokenSubject = Depends(get_current_user),
    service: DescriptionAnalysisService = Depends(get_analysis_service),
):
    """
    Analyze a backend description into structured requirements.
    Clarification questions merge the model's own with rule-based follow-ups.
    """
    analysis = await service.analyze_description(request.description)

    return AnalyzeDescriptionResponse(
        analysis=analysis,
        clarification_questions=service.generate_clarification_questions(analysis),
    )


@router.post("/recommendations", response_model=TechStackRecommendationResponse)
async def recommend_tech_stack(
    request: TechStackRecommendationRequest,
    user: TokenSubject = Depends(get_current_user),
    service: DescriptionAnalysisService = Depends(get_analysis_service),
):
    """
    Recommend ranked tech stacks for analyzed requirements.
    With ``rescore`` the model's scores are replaced by the local scoring model.
    """
    recommendations: List[TechStackRecommendation] = await service.recommend_tech_stack(
        request.requirements,
        preferences=request.preferences,
        scale=request.scale,
    )

    if request.rescore:
        recommendations = service.rank_recommendations(
            recommendations, request.requirements, request.preferences
        )

    return TechStackRecommendationResponse(recommendations=recommendations)


@router.post("/clarifications", response_model=ClarificationResponse)
async def clarification_questions(
    analysis: AnalysisResult,
    user: TokenSubject = Depends(get_current_user),
):
    """Follow-up questions for an analysis; no model call"""
    return ClarificationResponse(questions=generate_clarification_questions(analysis))


@router.post("/score", response_model=ScoreResponse)
async def score_candidate(
    request: ScoreRequest,
    user: TokenSubject = Depends(get_current_user),
):
    """Score a single tech stack candidate against requirements"""
    return ScoreResponse(
        score=score_tech_stack_recommendation(
            request.candidate, request.requirements, request.preferences
        )
    )
