"""Tests for description analysis, clarification and stack scoring."""

import pytest

from backend_forge.adapters.llm import LLMAuthenticationError, LLMProviderType
from backend_forge.schemas import (
    AnalysisResult,
    TechStackCandidate,
    TechStackPreferences,
    TechStackRecommendation,
)
from backend_forge.services.ai import (
    AIErrorKind,
    AnalysisError,
    AnalysisParsingError,
    DescriptionAnalysisService,
)
from backend_forge.services.ai.analysis import (
    coerce_analysis_result,
    coerce_tech_stack_recommendations,
    generate_clarification_questions,
    match_database_type,
    parse_json_object,
    rank_recommendations,
    score_tech_stack_recommendation,
)

from conftest import as_reply

BLOG_ANALYSIS = {
    "functionality": ["blog posts"],
    "authentication": {"required": True},
    "database": {"type": "MongoDB"},
}


@pytest.fixture
def service(client):
    return DescriptionAnalysisService(client)


def requirements(**fields) -> AnalysisResult:
    return AnalysisResult.model_validate(fields)


class TestParseJsonObject:

    def test_plain_object(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_surrounding_commentary_and_fences(self):
        content = 'Here is the analysis:\n```json\n{"a": {"b": [1, 2]}}\n```\nLet me know!'
        assert parse_json_object(content) == {"a": {"b": [1, 2]}}

    def test_trailing_braces_after_object_ignored(self):
        assert parse_json_object('{"a": 1} and also {"b": 2}') == {"a": 1}

    def test_no_json(self):
        with pytest.raises(AnalysisParsingError, match="No JSON found in AI response"):
            parse_json_object("I cannot help with that", "analysis")

    def test_invalid_json(self):
        with pytest.raises(AnalysisParsingError, match="^Failed to parse analysis response:"):
            parse_json_object("Result: {functionality: [blog]}", "analysis")


class TestCoerceAnalysis:

    def test_minimal_reply_gets_defaults(self):
        result = coerce_analysis_result(BLOG_ANALYSIS)

        assert result.functionality == ["blog posts"]
        assert result.data_models == []
        assert result.api_endpoints == []
        assert result.authentication.required is True
        assert result.authentication.type == "JWT"
        assert result.database.type == "MongoDB"
        assert result.database.reasoning == ""
        assert result.integrations == []
        assert result.clarification_questions == []

    def test_malformed_fields_fall_back_individually(self):
        result = coerce_analysis_result({
            "functionality": "not a list",
            "dataModels": [{"name": "Post", "fields": ["title", 3]}, "junk"],
            "apiEndpoints": [{"method": "post", "path": "/posts"}],
            "authentication": {"required": "yes", "type": "OAuth"},
            "database": None,
            "security": ["rate limiting", None],
        })

        assert result.functionality == []
        assert [m.name for m in result.data_models] == ["Post", "Unknown"]
        assert result.data_models[0].fields == ["title"]
        assert result.api_endpoints[0].method == "POST"
        assert result.api_endpoints[0].description == ""
        assert result.authentication.required is False
        assert result.authentication.type == "OAuth"
        assert result.database.type == "unknown"
        assert result.security == ["rate limiting"]

    def test_snake_case_keys_accepted(self):
        result = coerce_analysis_result({"data_models": [{"name": "User"}], "clarification_questions": ["Why?"]})

        assert result.data_models[0].name == "User"
        assert result.clarification_questions == ["Why?"]

    def test_non_object_gives_empty_result(self):
        assert coerce_analysis_result(["a"]) == AnalysisResult()


class TestCoerceRecommendations:

    def test_defaults_and_invalid_levels(self):
        recommendations = coerce_tech_stack_recommendations({
            "recommendations": [
                {"language": "Python", "framework": "FastAPI", "database": "PostgreSQL", "score": 88,
                 "rank": 1, "learningCurve": "low", "communitySupport": "excellent"},
                {"complexity": "extreme", "score": "high", "rank": True},
            ]
        })

        first, second = recommendations
        assert (first.language, first.framework, first.database) == ("Python", "FastAPI", "PostgreSQL")
        assert first.score == 88
        assert first.learning_curve == "low"
        assert first.community_support == "excellent"
        assert (second.language, second.framework, second.database) == ("JavaScript", "Express.js", "MongoDB")
        assert second.complexity == "medium"
        assert second.score == 0
        assert second.rank == 1

    def test_missing_list(self):
        assert coerce_tech_stack_recommendations({"stacks": []}) == []

    def test_score_clamped(self):
        [recommendation] = coerce_tech_stack_recommendations({"recommendations": [{"score": 250}]})
        assert recommendation.score == 100

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity", "1e400"])
    def test_non_finite_rank_falls_back(self, literal):
        raw = parse_json_object(
            f'{{"recommendations":[{{"language":"Go","rank":{literal}}},{{"language":"Python"}}]}}'
        )

        first, second = coerce_tech_stack_recommendations(raw)

        assert (first.language, first.rank) == ("Go", 1)
        assert (second.language, second.rank) == ("Python", 1)

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "1e400"])
    def test_non_finite_score_falls_back(self, literal):
        raw = parse_json_object(f'{{"recommendations":[{{"score":{literal}}}]}}')

        [recommendation] = coerce_tech_stack_recommendations(raw)

        assert recommendation.score == 0

    def test_huge_integer_score_falls_back(self):
        [recommendation] = coerce_tech_stack_recommendations({"recommendations": [{"score": 10 ** 400}]})

        assert recommendation.score == 0

    def test_nan_score_not_clamped_to_maximum(self):
        assert TechStackRecommendation(score=float("nan")).score == 0
        assert TechStackRecommendation(score=float("inf")).score == 0


class TestAnalyzeDescription:

    async def test_parses_reply(self, service, adapter):
        adapter.queue(as_reply(BLOG_ANALYSIS, prefix="Sure! ", suffix="\nHope this helps."))

        result = await service.analyze_description("A blog API with users")

        assert result.functionality == ["blog posts"]
        assert result.authentication.required is True
        messages, config = adapter.calls[0]
        assert "A blog API with users" in messages[1].content
        assert config.max_tokens == 2000

    async def test_reply_without_json(self, service, adapter):
        adapter.queue("I'm not sure what you mean.")

        with pytest.raises(AnalysisError) as exc_info:
            await service.analyze_description("???")

        error = exc_info.value
        assert error.is_parsing_failure
        assert not error.is_provider_failure
        assert str(error) == "Failed to analyze description: Failed to parse analysis response: No JSON found in AI response"

    async def test_provider_failure_keeps_message(self, service, adapter):
        adapter.queue(LLMAuthenticationError("invalid_api_key", LLMProviderType.OPENAI, {"status_code": 401}))

        with pytest.raises(AnalysisError) as exc_info:
            await service.analyze_description("A blog")

        error = exc_info.value
        assert error.is_provider_failure
        assert error.cause.kind == AIErrorKind.INVALID_API_KEY
        assert str(error) == "Failed to analyze description: invalid_api_key"
        assert error.__cause__ is error.cause


class TestRecommendTechStack:

    async def test_prompt_carries_requirements_preferences_and_scale(self, service, adapter):
        adapter.queue(as_reply({"recommendations": [{"language": "Go", "framework": "Gin", "database": "PostgreSQL"}]}))
        analysis = requirements(functionality=["orders"], dataModels=[{"name": "Order"}])

        result = await service.recommend_tech_stack(analysis, TechStackPreferences(language="Go"), scale="large")

        assert [r.framework for r in result] == ["Gin"]
        prompt = adapter.calls[0][0][1].content
        assert '"dataModels":[{"name":"Order"' in prompt
        assert 'Preferences: {"language":"Go"}' in prompt
        assert "Scale: large" in prompt
        assert adapter.calls[0][1].temperature == 0.4

    async def test_without_preferences(self, service, adapter):
        adapter.queue(as_reply({"recommendations": []}))

        await service.recommend_tech_stack(requirements())

        assert "Preferences: {}" in adapter.calls[0][0][1].content

    async def test_non_finite_numbers_in_reply(self, service, adapter):
        adapter.queue('{"recommendations":[{"language":"Go","rank":NaN,"score":Infinity}]}')

        [recommendation] = await service.recommend_tech_stack(requirements())

        assert recommendation.language == "Go"
        assert recommendation.rank == 1
        assert recommendation.score == 0

    async def test_parse_failure_wrapped(self, service, adapter):
        adapter.queue("no stacks today")

        with pytest.raises(AnalysisError, match="^Failed to generate tech stack recommendations:") as exc_info:
            await service.recommend_tech_stack(requirements())

        assert exc_info.value.is_parsing_failure


class TestClarificationQuestions:

    def test_empty_analysis(self):
        questions = generate_clarification_questions(AnalysisResult())

        assert questions == [
            "What is the main purpose of your backend application?",
            "What kind of data will your application store and manage?",
            "What API endpoints do you need for your frontend or external integrations?",
            "Do you have any preferences for the database type (SQL vs NoSQL)?",
        ]

    def test_blog_example(self):
        questions = generate_clarification_questions(coerce_analysis_result(BLOG_ANALYSIS))

        assert questions == [
            "What kind of data will your application store and manage?",
            "What API endpoints do you need for your frontend or external integrations?",
        ]

    def test_model_questions_come_first_without_duplicates(self):
        analysis = requirements(
            functionality=["user accounts", "payment processing", "a", "b", "c", "d"],
            clarificationQuestions=[
                "What kind of data will your application store and manage?",
                "Which regions do you serve?",
            ],
        )

        questions = generate_clarification_questions(analysis)

        assert questions[:2] == [
            "What kind of data will your application store and manage?",
            "Which regions do you serve?",
        ]
        assert len(questions) == len(set(questions))
        assert "Do you need user authentication and authorization?" in questions
        assert "Are there any specific performance requirements or expected load?" in questions
        assert "Do you need to integrate with any third-party services?" in questions

    def test_service_method_delegates(self, service):
        assert service.generate_clarification_questions(AnalysisResult()) == generate_clarification_questions(
            AnalysisResult()
        )


class TestMatchDatabaseType:

    @pytest.mark.parametrize(
        "recommended, required, expected",
        [
            ("PostgreSQL", "SQL", True),
            ("MySQL", "relational SQL", True),
            ("MongoDB", "SQL", False),
            ("MongoDB", "NoSQL", True),
            ("PostgreSQL", "NoSQL", False),
            ("Redis", "redis", True),
            ("MongoDB", "unknown", False),
        ],
    )
    def test_families(self, recommended, required, expected):
        assert match_database_type(recommended, required) is expected


class TestScoring:

    def test_default_candidate_against_blog(self):
        # 8 + 9 + 8 popularity, +5 medium complexity, +5 learning, +5 community, +10 db match
        assert score_tech_stack_recommendation(TechStackCandidate(), coerce_analysis_result(BLOG_ANALYSIS)) == 50

    def test_unknown_database_type_counts_as_mismatch(self):
        assert score_tech_stack_recommendation(TechStackCandidate(), AnalysisResult()) == 30

    def test_deterministic(self):
        candidate = TechStackCandidate(language="Python", framework="FastAPI", database="PostgreSQL")
        analysis = requirements(functionality=["x"] * 6, security=["encryption"])
        assert len({score_tech_stack_recommendation(candidate, analysis) for _ in range(5)}) == 1

    @pytest.mark.parametrize("field, value", [("language", "JavaScript"), ("framework", "Express.js"),
                                              ("database", "MongoDB")])
    def test_matching_preference_scores_higher(self, field, value):
        analysis = coerce_analysis_result(BLOG_ANALYSIS)
        without = score_tech_stack_recommendation(TechStackCandidate(), analysis)
        with_preference = score_tech_stack_recommendation(
            TechStackCandidate(), analysis, TechStackPreferences(**{field: value})
        )
        assert with_preference == without + 15

    def test_clamped_to_100(self):
        candidate = TechStackCandidate(
            language="TypeScript", framework="FastAPI", database="PostgreSQL",
            complexity="high", learning_curve="low", scalability="high", community_support="excellent",
        )
        analysis = requirements(functionality=["f"] * 11, security=["audit"], database={"type": "SQL"})
        preferences = TechStackPreferences(language="TypeScript", framework="FastAPI", database="PostgreSQL")

        assert score_tech_stack_recommendation(candidate, analysis, preferences) == 100

    def test_clamped_to_zero(self):
        candidate = TechStackCandidate(
            language="Cobol", framework="CICS", database="IMS",
            complexity="high", learning_curve="high", scalability="low", community_support="poor",
        )
        analysis = requirements(functionality=["f"], performance=["10k rps"], database={"type": "NoSQL"})

        assert score_tech_stack_recommendation(candidate, analysis) == 0

    def test_scalability_only_counts_for_demanding_requirements(self):
        high = TechStackCandidate(scalability="high")
        low = TechStackCandidate(scalability="low")
        light = requirements(functionality=["a"])
        heavy = requirements(functionality=["a"], performance=["low latency"])

        assert score_tech_stack_recommendation(high, light) == score_tech_stack_recommendation(low, light)
        assert score_tech_stack_recommendation(high, heavy) - score_tech_stack_recommendation(low, heavy) == 25

    def test_secure_language_bonus(self):
        analysis = requirements(security=["OWASP"])
        go = TechStackCandidate(language="Go")
        go_without_security = score_tech_stack_recommendation(go, AnalysisResult())
        assert score_tech_stack_recommendation(go, analysis) == go_without_security + 5


class TestRanking:

    def test_ranked_by_local_score(self):
        analysis = requirements(functionality=["a"], database={"type": "SQL"})
        candidates = [
            TechStackCandidate(language="JavaScript", framework="Express.js", database="MongoDB"),
            TechStackCandidate(language="Python", framework="FastAPI", database="PostgreSQL", learning_curve="low"),
            TechStackCandidate(language="Go", framework="Gin", database="MySQL"),
        ]

        ranked = rank_recommendations(candidates, analysis)

        assert [r.framework for r in ranked] == ["FastAPI", "Gin", "Express.js"]
        assert [r.rank for r in ranked] == [1, 2, 3]
        assert ranked[0].score >= ranked[1].score >= ranked[2].score
        assert ranked[0].score == score_tech_stack_recommendation(candidates[1], analysis)

    def test_ties_keep_model_order(self):
        candidates = coerce_tech_stack_recommendations({
            "recommendations": [{"rank": 2, "reasoning": "second"}, {"rank": 1, "reasoning": "first"}]
        })

        ranked = rank_recommendations(candidates, AnalysisResult())

        assert [r.reasoning for r in ranked] == ["first", "second"]
        assert [r.rank for r in ranked] == [1, 2]

    def test_empty(self):
        assert rank_recommendations([], AnalysisResult()) == []
