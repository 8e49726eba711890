import asyncio

import pytest

from conftest import auth, make_profile
from app.models.matching_settings import (
    CompatibilityBands,
    ProfileScoringWeights,
    SuggestionSettings,
)
from app.models.models import DeveloperProfile
from app.services.matching import (
    FAILED_PROFILE_MESSAGE,
    NO_PROFILE_MESSAGE,
    SuggestionEngine,
    common_technologies,
    factor_scores,
    top_factors,
)
from app.services.stores import STATUS_ACCEPTED

ME = 1


def disjoint_profile():
    return make_profile(
        headline="Brand designer",
        keyStrengths=["Visual Design"],
        identifiedTechnologies=["Figma"],
        potentialRoles=["CMO"],
        architecturalConcepts=["Design Systems"],
        languageStats={"Swift": "100"},
        estimatedExperience="Junior",
        repoCount=0,
        projectInsights=["marketing landing pages"],
    )


@pytest.fixture
def engine(profile_store, connection_store):
    return SuggestionEngine(profile_store, connection_store)


class TestDeveloperProfile:
    def test_nested_and_flat_documents(self):
        """Test nested and flat profile documents parse the same"""
        nested = DeveloperProfile.from_document(make_profile())
        flat = DeveloperProfile.from_document(make_profile()["technical"])
        assert nested == flat
        assert nested.language_stats == {"Python": 70.0, "Go": 20.0, "Shell": 10.0}
        assert nested.project_insights == ["matchbox async recommendation engine with caching"]
        assert nested.is_analyzed

    def test_missing_status_is_not_analyzed(self):
        """Test a profile without analysisStatus is not analyzed"""
        profile = DeveloperProfile.from_document({"technical": {"headline": "x"}})
        assert not profile.is_analyzed

    def test_not_a_document(self):
        """Test non-dict profile data is rejected"""
        assert DeveloperProfile.from_document(None) is None
        assert DeveloperProfile.from_document({"technical": "oops"}) is None

    def test_comma_separated_labels(self):
        """Test comma and semicolon separated labels become lists"""
        profile = DeveloperProfile.from_document({"identifiedTechnologies": "Docker, Redis; Kafka"})
        assert profile.identified_technologies == ["Docker", "Redis", "Kafka"]


class TestScoringHelpers:
    def test_identical_profiles_score_one_on_every_factor(self):
        """Test identical profiles score 1 on every factor"""
        me = DeveloperProfile.from_document(make_profile())
        factors = factor_scores(me, me)
        assert all(v == pytest.approx(1.0) for v in factors.values())

    def test_default_weights_sum_to_one(self):
        """Test the default weights sum to 1"""
        assert sum(ProfileScoringWeights().as_dict().values()) == pytest.approx(1.0)

    def test_invalid_weights_rejected(self):
        """Test weights that do not sum to 1 are rejected"""
        with pytest.raises(ValueError):
            ProfileScoringWeights(technical_skills=0.9)

    def test_bands(self):
        """Test compatibility band boundaries"""
        bands = CompatibilityBands()
        assert bands.classify(0.70) == "Excellent"
        assert bands.classify(0.55) == "High"
        assert bands.classify(0.30) == "Medium"
        assert bands.classify(0.29) == "Low"

    def test_common_technologies_keep_caller_order(self):
        """Test shared technologies keep the caller's order and spelling"""
        mine = ["FastAPI", "MongoDB", "Docker", "Redis"]
        theirs = ["redis", "docker", "Kafka"]
        assert common_technologies(mine, theirs, limit=5) == ["Docker", "Redis"]
        assert common_technologies(mine, theirs, limit=1) == ["Docker"]

    def test_top_factor_ties_keep_factor_order(self):
        """Test tied factors keep their declared order"""
        factors = {
            "technical_skills": 0.2, "technology_stack": 0.9, "language_distribution": 0.9,
            "roles": 0.9, "architectural_concepts": 0.1, "experience_level": 0.5,
            "repo_activity": 0.0, "project_insights": 0.0,
        }
        ranked = top_factors(factors, 3)
        assert [f.factor for f in ranked] == ["technology_stack", "language_distribution", "roles"]
        assert ranked[1].label == "Programming Languages"

    @pytest.mark.parametrize("factor,override", [
        ("technical_skills", {"keyStrengths": ["Sales"]}),
        ("technology_stack", {"identifiedTechnologies": ["Excel"]}),
        ("language_distribution", {"languageStats": {"Swift": "100"}}),
        ("roles", {"potentialRoles": ["CMO"]}),
        ("architectural_concepts", {"architecturalConcepts": ["Design Systems"]}),
        ("experience_level", {"estimatedExperience": "Expert"}),
        ("repo_activity", {"repoCount": 0}),
        ("project_insights", {"projectInsights": ["marketing landing pages"]}),
    ])
    def test_each_weight_moves_composite_on_its_own(self, engine, factor, override):
        """Zeroing one factor lowers the composite by exactly that factor's weight"""
        me = DeveloperProfile.from_document(make_profile(estimatedExperience="Junior"))
        changed = DeveloperProfile.from_document(make_profile(**{"estimatedExperience": "Junior", **override}))

        full, _ = engine.score_candidate(me, me)
        partial, factors = engine.score_candidate(me, changed)

        assert factors[factor] == pytest.approx(0.0)
        assert all(v == pytest.approx(1.0) for name, v in factors.items() if name != factor)
        assert full - partial == pytest.approx(ProfileScoringWeights().as_dict()[factor])


class TestSuggestionEngine:
    def test_end_to_end_scenario(self, engine, profile_store, connection_store):
        """Test exclusion and ranking over a mixed candidate pool"""
        profile_store.add_user(ME, make_profile())
        profile_store.add_user(2, make_profile(), username="twin")
        profile_store.add_user(3, disjoint_profile())
        profile_store.add_user(4, make_profile())
        profile_store.add_user(5, make_profile())
        profile_store.add_user(6, make_profile(status="failed"))
        profile_store.add_user(7)
        connection_store.add(ME, 4, status=STATUS_ACCEPTED)
        connection_store.add(ME, 5)

        result = asyncio.run(engine.get_suggestions(ME))

        assert [s.user_id for s in result.suggestions] == [2]
        top = result.suggestions[0]
        assert top.github_username == "twin"
        assert top.score == pytest.approx(1.0)
        assert top.match_percentage == 100
        assert top.compatibility == "Excellent"
        assert top.key_strengths == ["Python", "API Design", "Data Modeling"]
        assert top.common_technologies == ["FastAPI", "MongoDB", "Docker", "Redis"]
        assert [f.factor for f in top.top_factors] == ["technical_skills", "technology_stack", "language_distribution"]
        assert set(top.breakdown) == set(ProfileScoringWeights().as_dict())

        assert result.stats.total_candidates == 2
        assert result.stats.above_threshold == 1
        assert result.stats.returned == 1
        assert result.message == "Found 1 potential co-founder matches."

    def test_incoming_pending_request_is_excluded(self, engine, profile_store, connection_store):
        """Test users who sent the caller a request are excluded"""
        profile_store.add_user(ME, make_profile())
        profile_store.add_user(2, make_profile())
        connection_store.add(2, ME)

        result = asyncio.run(engine.get_suggestions(ME))
        assert result.suggestions == []
        assert result.stats.total_candidates == 0

    def test_results_capped_and_sorted(self, profile_store, connection_store):
        """Test results are sorted and capped at the limit"""
        profile_store.add_user(ME, make_profile(repoCount=20))
        for uid in range(2, 27):
            profile_store.add_user(uid, make_profile(repoCount=uid))

        engine = SuggestionEngine(profile_store, connection_store, SuggestionSettings(max_results=20))
        result = asyncio.run(engine.get_suggestions(ME))

        scores = [s.score for s in result.suggestions]
        assert len(scores) == 20
        assert scores == sorted(scores, reverse=True)
        assert result.stats.total_candidates == 25
        assert result.stats.above_threshold == 25
        assert result.suggestions[0].user_id == 20

    def test_min_score_threshold(self, profile_store, connection_store):
        """Test candidates below the minimum score are dropped"""
        profile_store.add_user(ME, make_profile())
        profile_store.add_user(2, make_profile(keyStrengths=["Sales"], identifiedTechnologies=["Excel"]))

        strict = SuggestionEngine(profile_store, connection_store, SuggestionSettings(min_score=0.99))
        result = asyncio.run(strict.get_suggestions(ME))
        assert result.suggestions == []
        assert result.stats.total_candidates == 1
        assert result.stats.above_threshold == 0
        assert result.message.startswith("No matching co-founders")

    def test_no_saved_profile(self, engine, profile_store):
        """Test a caller with no saved profile"""
        profile_store.add_user(2, make_profile())
        result = asyncio.run(engine.get_suggestions(ME))
        assert result.suggestions == []
        assert result.message == NO_PROFILE_MESSAGE

    def test_failed_profile(self, engine, profile_store):
        """Test a caller whose analysis failed"""
        profile_store.add_user(ME, make_profile(status="failed"))
        profile_store.add_user(2, make_profile())
        result = asyncio.run(engine.get_suggestions(ME))
        assert result.suggestions == []
        assert result.message == FAILED_PROFILE_MESSAGE


class TestSuggestionsRoute:
    def test_requires_user_header(self, client):
        """Test suggestions need a caller id"""
        response = client.get("/api/suggestions/")
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication token is required."

    def test_rejects_malformed_user_header(self, client):
        """Test malformed caller ids return 400"""
        assert client.get("/api/suggestions/", headers=auth("abc")).status_code == 400
        assert client.get("/api/suggestions/", headers=auth(0)).status_code == 400

    def test_returns_camel_case_payload(self, client, profile_store):
        """Test the response uses camelCase keys"""
        profile_store.add_user(ME, make_profile())
        profile_store.add_user(2, make_profile())

        response = client.get("/api/suggestions/", headers=auth(ME))

        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["totalCandidates"] == 1
        suggestion = data["suggestions"][0]
        assert suggestion["matchPercentage"] == 100
        assert suggestion["topFactors"][0]["label"] == "Technical Skills"
        assert "commonTechnologies" in suggestion

    def test_store_failure_is_a_server_error(self, client, profile_store, monkeypatch):
        """Test a store failure returns a generic 500"""
        async def broken(user_id):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(profile_store, "get_profile", broken)
        response = client.get("/api/suggestions/", headers=auth(ME))
        assert response.status_code == 500
        assert response.json()["message"] == "An unexpected error occurred. Please try again later."


class TestSettingsFromEnvironment:
    def test_defaults(self, monkeypatch):
        """Test settings fall back to the defaults"""
        from app.dependencies import load_settings

        for key in ("SUGGESTION_MIN_SCORE", "SUGGESTION_LIMIT", "RERANK_CANDIDATE_LIMIT", "RERANK_MAX_CONCURRENCY"):
            monkeypatch.delenv(key, raising=False)
        suggestion, rerank = load_settings()
        assert suggestion.min_score == 0.15
        assert suggestion.max_results == 20
        assert rerank.candidate_limit == 10
        assert rerank.max_concurrency is None

    def test_overrides(self, monkeypatch):
        """Test environment values override the defaults"""
        from app.dependencies import load_settings

        monkeypatch.setenv("SUGGESTION_LIMIT", "5")
        monkeypatch.setenv("RERANK_MAX_CONCURRENCY", "3")
        suggestion, rerank = load_settings()
        assert suggestion.max_results == 5
        assert rerank.max_concurrency == 3

    @pytest.mark.parametrize("key,value", [
        ("SUGGESTION_LIMIT", "lots"),
        ("SUGGESTION_MIN_SCORE", "1.5"),
        ("RERANK_MAX_CONCURRENCY", "many"),
    ])
    def test_invalid_values(self, monkeypatch, key, value):
        """Test bad environment values raise ConfigurationError"""
        from app.dependencies import load_settings
        from app.utils.exceptions import ConfigurationError

        monkeypatch.setenv(key, value)
        with pytest.raises(ConfigurationError):
            load_settings()
