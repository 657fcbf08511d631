"""
Unit tests for the scoring engine, share of voice and score deltas.
"""

import pytest

from agents.scoring_engine import (
    ScoringWeights,
    compare_providers,
    compute_score_deltas,
    compute_share_of_voice,
    find_previous_scan,
    score_provider,
    score_scan,
)
from models.schemas import (
    CompetitorMention,
    MentionAnalysis,
    ProviderResponse,
    ProviderScore,
    ScanResult,
)

WEIGHTS = ScoringWeights()


def analysis(provider="openai", mentioned=True, intent="recommendation", exact_position=1,
             sentiment="recommended", error=None, competitors=(), query_id="q1"):
    response = ProviderResponse(
        query_id=query_id,
        query_text="Which scheduling tool should I use?",
        intent=intent,
        provider=provider,
        text=None if error else "An answer",
        error=error,
    )
    return MentionAnalysis(
        response=response,
        mentioned=mentioned and not error,
        position="top_3" if mentioned and not error else "not_found",
        exact_position=exact_position if mentioned and not error else None,
        sentiment=sentiment if mentioned and not error else None,
        competitors=[CompetitorMention(name=n, position=i) for i, n in enumerate(competitors, 1)],
    )


class TestScoreProvider:
    def test_no_successful_calls_leaves_rate_undefined(self):
        score = score_provider("anthropic", [analysis(provider="anthropic", error="timeout")] * 3, WEIGHTS)
        assert score.mention_rate is None
        assert score.composite_score == 0.0
        assert score.total_queries == 0
        assert score.failed_queries == 3

    def test_failed_calls_excluded_from_denominator(self):
        items = [analysis(), analysis(), analysis(mentioned=False), analysis(error="rate_limit")]
        score = score_provider("openai", items, WEIGHTS)
        assert score.mention_rate == pytest.approx(2 / 3)
        assert score.total_queries == 3
        assert score.failed_queries == 1
        assert score.mentions_count == 2

    def test_perfect_visibility_scores_100(self):
        score = score_provider("openai", [analysis(), analysis()], WEIGHTS)
        assert score.composite_score == pytest.approx(100.0)
        assert score.avg_position == 1
        assert score.sentiment_avg == 1.0

    def test_never_mentioned_scores_zero(self):
        score = score_provider("openai", [analysis(mentioned=False)] * 4, WEIGHTS)
        assert score.mention_rate == 0
        assert score.composite_score == 0
        assert score.sentiment_avg is None

    def test_category_coverage_counts_intents(self):
        items = [
            analysis(intent="recommendation"),
            analysis(intent="comparison", mentioned=False),
            analysis(intent="budget_based", mentioned=False),
            analysis(intent="alternatives"),
        ]
        assert score_provider("openai", items, WEIGHTS).category_coverage == 0.5

    def test_lower_rank_and_negative_sentiment_score_lower(self):
        strong = score_provider("openai", [analysis(exact_position=1)] * 2, WEIGHTS)
        weak = score_provider("openai", [analysis(exact_position=6, sentiment="negative")] * 2, WEIGHTS)
        assert weak.composite_score < strong.composite_score

    def test_more_mentions_score_higher(self):
        high = [analysis()] * 6 + [analysis(mentioned=False)] * 2
        low = [analysis()] * 4 + [analysis(mentioned=False)] * 4
        assert score_provider("a", high, WEIGHTS).composite_score > score_provider("b", low, WEIGHTS).composite_score


class TestScoreScan:
    def test_inactive_provider_excluded_from_final_score(self):
        items = [analysis(provider="openai")] * 4 + [analysis(provider="anthropic", error="server_error")] * 4
        score = score_scan(items, ["openai", "anthropic"], WEIGHTS)

        assert score.by_model["anthropic"].mention_rate is None
        assert score.final_score == pytest.approx(100.0)
        assert score.breakdown.model_consistency == 100
        assert score.mention_rate == 1.0

    def test_divergent_providers_are_penalized(self):
        items = [analysis(provider="openai")] * 4 + [analysis(provider="anthropic", mentioned=False)] * 4
        score = score_scan(items, ["openai", "anthropic"], WEIGHTS)

        assert score.by_model["openai"].composite_score == pytest.approx(100.0)
        assert score.by_model["anthropic"].composite_score == 0
        assert score.breakdown.model_consistency == 0
        assert score.final_score == pytest.approx(25.0)

    def test_no_active_provider(self):
        score = score_scan([analysis(error="timeout")], ["openai"], WEIGHTS)
        assert score.final_score == 0
        assert score.mention_rate is None

    def test_every_queried_provider_is_reported(self):
        score = score_scan([analysis(provider="openai")], ["openai", "google"], WEIGHTS)
        assert set(score.by_model) == {"openai", "google"}
        assert score.by_model["google"].total_queries == 0

    def test_final_score_stays_in_range(self):
        items = [analysis(exact_position=9, sentiment="negative")] * 3 + [analysis(provider="google")] * 3
        score = score_scan(items, ["openai", "google"], WEIGHTS)
        assert 0 <= score.final_score <= 100


class TestCompareProviders:
    def test_divergent_providers(self):
        items = [analysis(provider="openai")] * 4 + [analysis(provider="anthropic", mentioned=False)] * 4
        comparison = score_scan(items, ["openai", "anthropic"], WEIGHTS).comparison

        assert comparison.strongest_provider == "openai"
        assert comparison.weakest_provider == "anthropic"
        assert comparison.mention_rate_spread == 1.0
        assert comparison.consistency_score == 0
        assert comparison.insights == [
            "openai outperforms anthropic by 100 points",
            "Large mention rate gap between providers (100% vs 0%)",
            "Not mentioned by: anthropic",
        ]

    def test_agreeing_providers(self):
        items = [analysis(provider="openai")] * 2 + [analysis(provider="anthropic")] * 2
        comparison = score_scan(items, ["openai", "anthropic"], WEIGHTS).comparison

        assert comparison.consistency_score == 100
        assert comparison.insights == ["Mention rates are consistent across all providers"]

    def test_mixed_sentiment(self):
        scores = [
            ProviderScore(provider="openai", composite_score=60, mention_rate=0.5, sentiment_avg=1.0,
                          mentions_count=2, total_queries=4),
            ProviderScore(provider="anthropic", composite_score=55, mention_rate=0.5, sentiment_avg=-1.0,
                          mentions_count=2, total_queries=4),
        ]
        comparison = compare_providers(scores)

        assert comparison.strongest_provider == "openai"
        assert "Mixed sentiment: openai positive vs anthropic negative" in comparison.insights

    def test_providers_without_successful_calls_are_left_out(self):
        items = [analysis(provider="openai")] * 2 + [analysis(provider="google", error="timeout")] * 2
        comparison = score_scan(items, ["openai", "google"], WEIGHTS).comparison

        assert comparison.strongest_provider == comparison.weakest_provider == "openai"
        assert comparison.consistency_score == 100
        assert comparison.insights == []

    def test_no_active_provider(self):
        comparison = compare_providers([ProviderScore(provider="openai", failed_queries=3)])
        assert comparison.strongest_provider is None
        assert comparison.insights == []


class TestShareOfVoice:
    def test_counts_once_per_response(self):
        items = [
            analysis(competitors=["Calendly", "SavvyCal"]),
            analysis(mentioned=False, competitors=["Calendly", "calendly"]),
            analysis(mentioned=False, competitors=["Calendly"]),
        ]
        sov = compute_share_of_voice("Cal.com", items)

        shares = {b.name: b for b in sov.brands}
        assert sov.total_mentions == 5
        assert shares["Calendly"].mentions == 3
        assert shares["Cal.com"].mentions == 1
        assert shares["Cal.com"].is_self
        assert sov.brands[0].name == "Calendly"
        assert sov.your_rank == 2

    def test_failed_responses_are_ignored(self):
        sov = compute_share_of_voice("Cal.com", [analysis(error="timeout")])
        assert sov.total_mentions == 0
        assert sov.your_rank == 1


class TestDeltas:
    def _result(self, scan_id, analyses, profile):
        return ScanResult(
            scan_id=scan_id,
            brand_profile=profile,
            score=score_scan(analyses, ["openai"], WEIGHTS),
            analyses=analyses,
        )

    def test_first_scan_has_no_previous(self):
        score = score_scan([analysis()], ["openai"], WEIGHTS)
        deltas = compute_score_deltas(score, None)
        assert deltas.overall.current == score.final_score
        assert deltas.overall.delta is None
        assert deltas.previous_scan_id is None

    def test_delta_against_previous_scan(self, profile, repository):
        previous = self._result("scan-1", [analysis(), analysis(mentioned=False)], profile)
        repository.save_scan(previous)

        current = score_scan([analysis(), analysis()], ["openai"], WEIGHTS)
        found = find_previous_scan(repository, profile.domain, "scan-2")
        deltas = compute_score_deltas(current, found)

        assert deltas.previous_scan_id == "scan-1"
        assert deltas.mention_rate.previous == 0.5
        assert deltas.mention_rate.delta == pytest.approx(0.5)
        assert deltas.overall.delta > 0
        assert deltas.providers["openai"].delta > 0

    def test_current_scan_is_not_its_own_previous(self, profile, repository):
        repository.save_scan(self._result("scan-1", [analysis()], profile))
        assert find_previous_scan(repository, profile.domain, "scan-1") is None
