"""
Unit tests for the mention detector.

Covers the fast path, the trust rule between the LLM judge and literal
matches, and fallback on judge failures.
"""

import json

from agents.mention_detector_agent import MentionDetector, basic_analysis
from agents.mention_detector_agent.brand_matcher import strip_markdown
from tests.fakes import MENTION_RESPONSE, NO_MENTION_RESPONSE, FakeProvider


AMBIGUOUS_RESPONSE = (
    "Calendly is popular for small teams. Another open-source scheduler "
    "works well for developers who want to self-host."
)


def judge(**overrides):
    payload = {
        "brand_mentioned": False,
        "brand_position": "not_mentioned",
        "brand_exact_position": None,
        "brand_sentiment": None,
        "brand_description": None,
        "competitors_mentioned": [],
        "competitors_in_top_3": [],
        "other_brands_mentioned": [],
        "response_type": "list_recommendations",
    }
    payload.update(overrides)
    return FakeProvider("judge", json.dumps(payload))


class TestFastPath:
    def test_no_brand_and_no_competitor_skips_llm(self, profile, make_response):
        llm = judge(brand_mentioned=True)
        detector = MentionDetector(llm)

        analysis = detector.analyze(make_response("Use a paper diary and a phone."), profile)

        assert llm.calls == 0
        assert not analysis.mentioned
        assert analysis.position == "not_found"
        assert analysis.detection_method == "fast_path"
        assert analysis.confidence == "high"

    def test_exact_match_skips_llm(self, profile, make_response):
        llm = judge()
        analysis = MentionDetector(llm).analyze(make_response(MENTION_RESPONSE), profile)

        assert llm.calls == 0
        assert analysis.mentioned
        assert analysis.position == "top_3"
        assert analysis.exact_position == 1
        assert analysis.sentiment == "recommended"
        assert "Cal.com" in analysis.evidence
        names = [c.name for c in analysis.competitors]
        assert "Calendly" in names and "SavvyCal" in names

    def test_failed_response(self, profile, make_response):
        analysis = MentionDetector().analyze(make_response(None, error="timeout"), profile)
        assert not analysis.mentioned
        assert analysis.detection_method == "none"
        assert analysis.competitors == []

    def test_competitor_only_without_llm_uses_fallback(self, profile, make_response):
        analysis = MentionDetector().analyze(make_response(NO_MENTION_RESPONSE), profile)
        assert not analysis.mentioned
        assert analysis.detection_method == "fallback"
        assert analysis.confidence == "low"


class TestTrustRule:
    def test_llm_positive_with_literal_match_is_verified(self, profile, make_response):
        llm = judge(brand_mentioned=True, brand_position="top_3", brand_exact_position=1,
                    brand_sentiment="recommended")
        analysis = MentionDetector(llm, always_verify=True).analyze(make_response(MENTION_RESPONSE), profile)

        assert llm.calls == 1
        assert analysis.mentioned
        assert analysis.detection_method == "llm_verified"
        assert analysis.confidence == "high"
        assert analysis.exact_position == 1

    def test_llm_positive_with_description_is_accepted(self, profile, make_response):
        llm = judge(brand_mentioned=True, brand_position="mentioned_not_top",
                    brand_description="Described as the open-source scheduler for developers")
        analysis = MentionDetector(llm).analyze(make_response(AMBIGUOUS_RESPONSE), profile)

        assert analysis.mentioned
        assert analysis.detection_method == "llm"
        assert analysis.confidence == "medium"
        assert analysis.position == "mentioned_not_top"

    def test_llm_positive_without_evidence_is_rejected(self, profile, make_response):
        llm = judge(brand_mentioned=True, brand_position="top_3")
        analysis = MentionDetector(llm).analyze(make_response(AMBIGUOUS_RESPONSE), profile)

        assert not analysis.mentioned
        assert analysis.position == "not_found"
        assert analysis.sentiment is None

    def test_literal_match_overrides_llm_negative(self, profile, make_response):
        llm = judge(brand_mentioned=False)
        analysis = MentionDetector(llm, always_verify=True).analyze(make_response(MENTION_RESPONSE), profile)

        assert analysis.mentioned
        assert analysis.detection_method == "fast_path"
        assert analysis.confidence == "medium"

    def test_agreeing_negative_is_verified(self, profile, make_response):
        llm = judge(brand_mentioned=False, competitors_mentioned=["Calendly"])
        analysis = MentionDetector(llm).analyze(make_response(AMBIGUOUS_RESPONSE), profile)

        assert not analysis.mentioned
        assert analysis.detection_method == "llm_verified"
        assert analysis.confidence == "high"

    def test_names_absent_from_text_are_dropped(self, profile, make_response):
        llm = judge(brand_mentioned=False, competitors_mentioned=["Calendly"],
                    other_brands_mentioned=["Doodle", "Zoom Scheduler"])
        analysis = MentionDetector(llm).analyze(make_response(AMBIGUOUS_RESPONSE), profile)

        names = [c.name for c in analysis.competitors]
        assert names.count("Calendly") == 1
        assert "Doodle" not in names
        assert "Zoom Scheduler" not in names


class TestJudgeFailures:
    def test_invalid_json_falls_back(self, profile, make_response):
        llm = FakeProvider("judge", "Sure! The brand is mentioned.")
        analysis = MentionDetector(llm, always_verify=True).analyze(make_response(MENTION_RESPONSE), profile)

        assert analysis.mentioned
        assert analysis.detection_method == "fallback"

    def test_schema_mismatch_falls_back(self, profile, make_response):
        llm = FakeProvider("judge", json.dumps({"brand_mentioned": "yes"}))
        analysis = MentionDetector(llm).analyze(make_response(AMBIGUOUS_RESPONSE), profile)

        assert not analysis.mentioned
        assert analysis.detection_method == "fallback"

    def test_judge_call_error_falls_back(self, profile, make_response):
        llm = FakeProvider("judge", error="rate_limit")
        analysis = MentionDetector(llm, always_verify=True).analyze(make_response(MENTION_RESPONSE), profile)

        assert analysis.mentioned
        assert analysis.detection_method == "fallback"


def test_basic_analysis_late_mention_is_not_top(profile, make_response):
    text = ("Scheduling tools vary a lot. " * 12) + "Cal.com is one option."
    response = make_response(text)

    analysis = basic_analysis(response, strip_markdown(text), profile)

    assert analysis.mentioned
    assert analysis.position == "mentioned_not_top"
    assert analysis.exact_position == 5


class TestRepeatability:
    def test_same_input_gives_same_analysis(self, profile, make_response):
        detector = MentionDetector()
        for text in (MENTION_RESPONSE, NO_MENTION_RESPONSE, "Use a paper diary and a phone."):
            response = make_response(text)
            first = detector.analyze(response, profile)
            second = detector.analyze(response, profile)
            assert first.model_dump() == second.model_dump()

    def test_literal_match_survives_a_flipping_judge(self, profile, make_response):
        answers = iter([True, False, True, False])

        def flipping(prompt):
            return judge(brand_mentioned=next(answers)).responder

        llm = FakeProvider("judge", flipping)
        detector = MentionDetector(llm, always_verify=True)
        response = make_response(MENTION_RESPONSE)

        results = [detector.analyze(response, profile) for _ in range(4)]

        assert llm.calls == 4
        assert all(r.mentioned for r in results)
        assert {r.exact_position for r in results} == {1}


class TestNearMatches:
    NEAR_RESPONSE = "Many small teams like SavvyKal for ranked availability and overlays."

    @staticmethod
    def savvycal(profile):
        return profile.model_copy(update={
            "brand_name": "SavvyCal", "domain": "savvycal.com", "aliases": [], "competitors": ["Calendly"],
        })

    def test_confirmed_near_spelling_counts(self, profile, make_response):
        llm = FakeProvider("judge", "Yes")
        analysis = MentionDetector(llm).analyze(make_response(self.NEAR_RESPONSE), self.savvycal(profile))

        assert llm.calls == 1
        assert "SavvyCal" in llm.prompts[0]
        assert analysis.mentioned
        assert analysis.detection_method == "fuzzy_confirmed"
        assert analysis.confidence == "medium"
        assert analysis.position == "top_3"
        assert "SavvyKal" in analysis.evidence

    def test_rejected_near_spelling_is_not_a_mention(self, profile, make_response):
        llm = FakeProvider("judge", "no")
        analysis = MentionDetector(llm).analyze(make_response(self.NEAR_RESPONSE), self.savvycal(profile))

        assert llm.calls == 1
        assert not analysis.mentioned
        assert analysis.detection_method == "fast_path"

    def test_failed_confirmation_is_not_a_mention(self, profile, make_response):
        llm = FakeProvider("judge", error="timeout")
        analysis = MentionDetector(llm).analyze(make_response(self.NEAR_RESPONSE), self.savvycal(profile))
        assert not analysis.mentioned

    def test_near_spelling_without_llm_is_ignored(self, profile, make_response):
        analysis = MentionDetector().analyze(make_response(self.NEAR_RESPONSE), self.savvycal(profile))
        assert not analysis.mentioned
        assert analysis.detection_method == "fast_path"

    def test_exact_match_never_asks_for_confirmation(self, profile, make_response):
        llm = FakeProvider("judge", "Yes")
        MentionDetector(llm).analyze(make_response(MENTION_RESPONSE), profile)
        assert llm.calls == 0
