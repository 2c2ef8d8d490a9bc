"""
Description Analysis Service
Turns a free-text backend description into validated requirements and
scores tech stack candidates against them.

Model output goes through two stages: the first JSON object in the reply is
parsed into plain Python data, then every field is coerced on its own into
the typed schema. A malformed field falls back to its default; only a reply
with no parseable JSON object fails.
"""

import json
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence

from backend_forge.schemas.analysis import (
    APIEndpoint,
    AnalysisResult,
    AuthenticationRequirement,
    DataModel,
    DatabaseRequirement,
    TechStackCandidate,
    TechStackPreferences,
    TechStackRecommendation,
)

from .client import AIServiceClient
from .errors import AIServiceError, AnalysisError, AnalysisParsingError
from .service import get_ai_service
from .types import GenerationTask

logger = logging.getLogger(__name__)

LEVELS = ("low", "medium", "high")
COMMUNITY_LEVELS = ("poor", "fair", "good", "excellent")

# Base points for well-supported languages, frameworks and databases
POPULARITY_SCORES = {
    "TypeScript": 10, "JavaScript": 8, "Python": 9, "Java": 8, "Go": 7,
    "Express.js": 9, "FastAPI": 8, "Spring Boot": 8, "Gin": 7,
    "PostgreSQL": 9, "MongoDB": 8, "MySQL": 7, "Redis": 8,
}
DEFAULT_POPULARITY_SCORE = 5
PREFERENCE_MATCH_BONUS = 15
LEARNING_CURVE_SCORES = {"low": 10, "medium": 5, "high": -5}
SCALABILITY_SCORES = {"low": -10, "medium": 0, "high": 15}
COMMUNITY_SUPPORT_SCORES = {"poor": -5, "fair": 0, "good": 5, "excellent": 10}
DATABASE_MATCH_SCORE = 10
DATABASE_MISMATCH_SCORE = -10
SECURE_LANGUAGES = ("TypeScript", "Java", "Go")
SECURE_LANGUAGE_BONUS = 5

SQL_DATABASES = ("postgresql", "mysql", "sqlite", "mssql")
NOSQL_DATABASES = ("mongodb", "cassandra", "dynamodb", "couchdb")


# =========================================================================
# PARSING
# =========================================================================

def parse_json_object(content: str, what: str = "AI") -> Dict[str, Any]:
    """
    Extract the first top-level JSON object from a model reply.

    Commentary or code fences around the object are tolerated.

    Raises:
        AnalysisParsingError: If the reply holds no object or it is not valid JSON
    """
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        raise AnalysisParsingError(f"Failed to parse {what} response: No JSON found in AI response")

    try:
        parsed, _ = json.JSONDecoder().raw_decode(content, start)
    except json.JSONDecodeError:
        try:
            parsed = json.loads(content[start:end + 1])
        except json.JSONDecodeError as e:
            raise AnalysisParsingError(f"Failed to parse {what} response: {e}") from e

    if not isinstance(parsed, dict):
        raise AnalysisParsingError(f"Failed to parse {what} response: expected a JSON object")
    return parsed


def _pick(raw: Dict[str, Any], camel: str, snake: str) -> Any:
    return raw[camel] if camel in raw else raw.get(snake)


def _str(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


def _number(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    try:
        number = float(value)
    except OverflowError:
        return default
    return number if math.isfinite(number) else default


def _choice(value: Any, options: Sequence[str], default: str) -> str:
    return value if value in options else default


def _dicts(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, dict) else {} for item in value]


def coerce_data_model(raw: Dict[str, Any]) -> DataModel:
    return DataModel(
        name=_str(raw.get("name"), "Unknown"),
        fields=_str_list(raw.get("fields")),
        relationships=_str_list(raw.get("relationships")),
    )


def coerce_api_endpoint(raw: Dict[str, Any]) -> APIEndpoint:
    method = raw.get("method")
    return APIEndpoint(
        method=method.upper() if isinstance(method, str) else "GET",
        path=_str(raw.get("path"), "/"),
        description=_str(raw.get("description"), ""),
    )


def coerce_analysis_result(raw: Any) -> AnalysisResult:
    """Field-by-field coercion of parsed model output into an AnalysisResult"""
    if not isinstance(raw, dict):
        raw = {}

    auth = raw.get("authentication")
    auth = auth if isinstance(auth, dict) else {}
    required = auth.get("required")

    database = raw.get("database")
    database = database if isinstance(database, dict) else {}

    return AnalysisResult(
        functionality=_str_list(raw.get("functionality")),
        data_models=[coerce_data_model(m) for m in _dicts(_pick(raw, "dataModels", "data_models"))],
        api_endpoints=[coerce_api_endpoint(e) for e in _dicts(_pick(raw, "apiEndpoints", "api_endpoints"))],
        authentication=AuthenticationRequirement(
            required=required if isinstance(required, bool) else False,
            type=_str(auth.get("type"), "JWT"),
        ),
        database=DatabaseRequirement(
            type=_str(database.get("type"), "unknown"),
            reasoning=_str(database.get("reasoning"), ""),
        ),
        integrations=_str_list(raw.get("integrations")),
        performance=_str_list(raw.get("performance")),
        security=_str_list(raw.get("security")),
        clarification_questions=_str_list(_pick(raw, "clarificationQuestions", "clarification_questions")),
    )


def coerce_tech_stack_recommendation(raw: Dict[str, Any]) -> TechStackRecommendation:
    return TechStackRecommendation(
        rank=_int(raw.get("rank"), 1),
        score=_number(raw.get("score"), 0.0),
        language=_str(raw.get("language"), "JavaScript"),
        framework=_str(raw.get("framework"), "Express.js"),
        database=_str(raw.get("database"), "MongoDB"),
        additional_tools=_str_list(_pick(raw, "additionalTools", "additional_tools")),
        pros=_str_list(raw.get("pros")),
        cons=_str_list(raw.get("cons")),
        reasoning=_str(raw.get("reasoning"), ""),
        complexity=_choice(raw.get("complexity"), LEVELS, "medium"),
        learning_curve=_choice(_pick(raw, "learningCurve", "learning_curve"), LEVELS, "medium"),
        scalability=_choice(raw.get("scalability"), LEVELS, "medium"),
        community_support=_choice(_pick(raw, "communitySupport", "community_support"), COMMUNITY_LEVELS, "good"),
    )


def coerce_tech_stack_recommendations(raw: Any) -> List[TechStackRecommendation]:
    if not isinstance(raw, dict):
        return []
    return [coerce_tech_stack_recommendation(r) for r in _dicts(raw.get("recommendations"))]


# =========================================================================
# CLARIFICATION
# =========================================================================

def _mentions(items: Iterable[str], *keywords: str) -> bool:
    return any(keyword in item.lower() for item in items for keyword in keywords)


def generate_clarification_questions(analysis: AnalysisResult) -> List[str]:
    """Model-suggested questions followed by rule-based follow-ups, de-duplicated"""
    questions = list(analysis.clarification_questions)
    functionality = analysis.functionality

    if not functionality:
        questions.append("What is the main purpose of your backend application?")

    if not analysis.data_models:
        questions.append("What kind of data will your application store and manage?")

    if not analysis.api_endpoints:
        questions.append("What API endpoints do you need for your frontend or external integrations?")

    if not analysis.authentication.required and _mentions(functionality, "user", "account"):
        questions.append("Do you need user authentication and authorization?")

    if analysis.database.type.strip().lower() in ("", "unknown"):
        questions.append("Do you have any preferences for the database type (SQL vs NoSQL)?")

    if not analysis.performance and len(functionality) > 5:
        questions.append("Are there any specific performance requirements or expected load?")

    if not analysis.integrations and _mentions(functionality, "payment", "email", "notification"):
        questions.append("Do you need to integrate with any third-party services?")

    return list(dict.fromkeys(questions))


# =========================================================================
# SCORING
# =========================================================================

def match_database_type(recommended: str, required: str) -> bool:
    """Whether a concrete database satisfies a required type or family"""
    recommended_lower = recommended.lower()
    required_lower = required.lower()

    if "sql" in required_lower and "nosql" not in required_lower:
        return any(db in recommended_lower for db in SQL_DATABASES)

    if "nosql" in required_lower:
        return any(db in recommended_lower for db in NOSQL_DATABASES)

    return recommended_lower in required_lower or required_lower in recommended_lower


def _complexity_score(complexity: str, functionality_count: int) -> int:
    if complexity == "low":
        return 10 if functionality_count < 5 else 0
    if complexity == "medium":
        return 10 if 5 <= functionality_count <= 10 else 5
    if complexity == "high":
        return 10 if functionality_count > 10 else -5
    return 0


def score_tech_stack_recommendation(
    candidate: TechStackCandidate,
    requirements: AnalysisResult,
    preferences: Optional[TechStackPreferences] = None,
) -> int:
    """
    Deterministic additive score of a candidate stack, clamped to [0, 100].

    Scoring Model:
    - Popularity: table points per language, framework and database (5 if unlisted)
    - +15 each: language, framework, database equal to the preferred one
    - Complexity: rewarded when it fits the number of functionality items
    - Learning curve: +10 low, +5 medium, -5 high
    - Scalability (more than 8 items or any performance note): +15 high, -10 low
    - Community support: -5 poor, 0 fair, +5 good, +10 excellent
    - Database family vs required type: +10 match, -10 mismatch
    - +5 for a language on the secure list when security requirements exist
    """
    score = 0
    functionality_count = len(requirements.functionality)

    score += POPULARITY_SCORES.get(candidate.language, DEFAULT_POPULARITY_SCORE)
    score += POPULARITY_SCORES.get(candidate.framework, DEFAULT_POPULARITY_SCORE)
    score += POPULARITY_SCORES.get(candidate.database, DEFAULT_POPULARITY_SCORE)

    if preferences is not None:
        if preferences.language is not None and preferences.language == candidate.language:
            score += PREFERENCE_MATCH_BONUS
        if preferences.framework is not None and preferences.framework == candidate.framework:
            score += PREFERENCE_MATCH_BONUS
        if preferences.database is not None and preferences.database == candidate.database:
            score += PREFERENCE_MATCH_BONUS

    score += _complexity_score(candidate.complexity, functionality_count)
    score += LEARNING_CURVE_SCORES.get(candidate.learning_curve, 0)

    if functionality_count > 8 or requirements.performance:
        score += SCALABILITY_SCORES.get(candidate.scalability, 0)

    score += COMMUNITY_SUPPORT_SCORES.get(candidate.community_support, 0)

    if requirements.database.type:
        if match_database_type(candidate.database, requirements.database.type):
            score += DATABASE_MATCH_SCORE
        else:
            score += DATABASE_MISMATCH_SCORE

    if requirements.security and candidate.language in SECURE_LANGUAGES:
        score += SECURE_LANGUAGE_BONUS

    return max(0, min(100, score))


def rank_recommendations(
    candidates: Sequence[TechStackCandidate],
    requirements: AnalysisResult,
    preferences: Optional[TechStackPreferences] = None,
) -> List[TechStackRecommendation]:
    """Rescore candidates locally and rank them by score, best first"""
    scored = []
    for index, candidate in enumerate(candidates):
        score = score_tech_stack_recommendation(candidate, requirements, preferences)
        model_rank = getattr(candidate, "rank", index + 1)
        scored.append((score, model_rank, index, candidate))

    scored.sort(key=lambda item: (-item[0], item[1], item[2]))

    ranked = []
    for position, (score, _, _, candidate) in enumerate(scored, start=1):
        data = candidate.model_dump(include=set(TechStackCandidate.model_fields))
        ranked.append(TechStackRecommendation(**data, rank=position, score=score))
    return ranked


# =========================================================================
# SERVICE
# =========================================================================

class DescriptionAnalysisService:
    """
    LLM-backed requirements analysis and tech stack recommendation.
    """

    def __init__(self, ai_client: Optional[AIServiceClient] = None):
        self.ai_client = ai_client or get_ai_service()

    async def analyze_description(self, description: str, timeout: Optional[float] = None) -> AnalysisResult:
        """
        Analyze a natural language description to extract structured requirements.

        Raises:
            AnalysisError: Wrapping the provider or parsing failure
        """
        try:
            response = await self.ai_client.generate_with_template(
                GenerationTask.ANALYZE_DESCRIPTION,
                {"description": description},
                timeout=timeout,
            )
            raw = parse_json_object(response.content, "analysis")
        except (AIServiceError, AnalysisParsingError) as e:
            logger.warning("Description analysis failed: %s", e)
            raise AnalysisError(f"Failed to analyze description: {e}", cause=e) from e

        result = coerce_analysis_result(raw)
        logger.info(
            "Description analyzed: %d functionality items, %d models, %d endpoints",
            len(result.functionality), len(result.data_models), len(result.api_endpoints),
        )
        return result

    async def recommend_tech_stack(
        self,
        requirements: AnalysisResult,
        preferences: Optional[TechStackPreferences] = None,
        scale: str = "medium",
        timeout: Optional[float] = None,
    ) -> List[TechStackRecommendation]:
        """
        Generate tech stack recommendations based on analyzed requirements.

        Raises:
            AnalysisError: Wrapping the provider or parsing failure
        """
        variables = {
            "requirements": requirements.model_dump_json(by_alias=True),
            "preferences": preferences.model_dump_json(by_alias=True, exclude_none=True) if preferences else "{}",
            "scale": scale or "medium",
        }

        try:
            response = await self.ai_client.generate_with_template(
                GenerationTask.RECOMMEND_TECH_STACK,
                variables,
                timeout=timeout,
            )
            raw = parse_json_object(response.content, "tech stack")
        except (AIServiceError, AnalysisParsingError) as e:
            logger.warning("Tech stack recommendation failed: %s", e)
            raise AnalysisError(f"Failed to generate tech stack recommendations: {e}", cause=e) from e

        return coerce_tech_stack_recommendations(raw)

    def generate_clarification_questions(self, analysis: AnalysisResult) -> List[str]:
        return generate_clarification_questions(analysis)

    def score_tech_stack_recommendation(
        self,
        candidate: TechStackCandidate,
        requirements: AnalysisResult,
        preferences: Optional[TechStackPreferences] = None,
    ) -> int:
        return score_tech_stack_recommendation(candidate, requirements, preferences)

    def rank_recommendations(
        self,
        candidates: Sequence[TechStackCandidate],
        requirements: AnalysisResult,
        preferences: Optional[TechStackPreferences] = None,
    ) -> List[TechStackRecommendation]:
        return rank_recommendations(candidates, requirements, preferences)


def get_analysis_service() -> DescriptionAnalysisService:
    """FastAPI dependency building the service on the shared client"""
    return DescriptionAnalysisService(get_ai_service())
