"""
Business Logic Services
"""

from .ai import AIService, AIServiceClient, DescriptionAnalysisService

__all__ = [
    "AIService",
    "AIServiceClient",
    "DescriptionAnalysisService",
]
