"""
Node functions for the scan workflow.

Nodes are methods on ScanNodes so every collaborator (providers,
profiler, repository) is injected rather than read from globals. Each
node writes a progress record on entry; progress failures never affect
the scan.
"""

import logging
import threading
from functools import partial
from typing import Callable, Dict, Optional

from agents.brand_profiler_agent import BrandProfiler
from agents.competitor_tracker import update_competitor_tracking
from agents.llm_providers import QUERY_SYSTEM_PROMPT, LLMProvider, ProviderResult
from agents.mention_detector_agent import MentionDetector, basic_analysis
from agents.mention_detector_agent.brand_matcher import strip_markdown
from agents.query_generator_agent import QueryGenerator
from agents.scan_orchestrator.errors import ScanErrorCode
from agents.scan_orchestrator.models import ScanGraphState
from agents.scan_orchestrator.pool import run_bounded
from agents.scoring_engine import (
    ScoringWeights,
    compute_score_deltas,
    compute_share_of_voice,
    find_previous_scan,
    score_scan,
)
from models.schemas import MentionAnalysis, ProviderResponse, Query, ScanProgress, ScanResult
from storage.repository import StorageError

logger = logging.getLogger(__name__)

STAGE_PERCENT = {
    "pending": 0,
    "profiling": 10,
    "generating_queries": 25,
    "querying": 40,
    "analyzing": 75,
    "scoring": 90,
    "complete": 100,
}
QUERYING_END_PERCENT = 70

ProgressConsumer = Callable[[str, int, str], None]


class ScanNodes:
    """
    Workflow nodes bound to the collaborators of one orchestrator.

    Args:
        providers: Query-answering providers by name
        profiler: Brand profiler
        generator: Query generator
        detector_llm: LLM for detection verification, or None
        repository: ScanRepository, or None to skip persistence
        scraper: Homepage scraper, or None
        progress_consumer: Optional fire-and-forget progress callback
        weights: Scoring weights
    """

    def __init__(
        self,
        providers: Dict[str, LLMProvider],
        profiler: BrandProfiler,
        generator: QueryGenerator,
        detector_llm: Optional[LLMProvider] = None,
        repository=None,
        scraper=None,
        progress_consumer: Optional[ProgressConsumer] = None,
        weights: Optional[ScoringWeights] = None,
    ):
        self.providers = providers
        self.profiler = profiler
        self.generator = generator
        self.detector_llm = detector_llm
        self.repository = repository
        self.scraper = scraper
        self.progress_consumer = progress_consumer
        self.weights = weights

    # Progress

    def report_progress(self, scan_id: str, stage: str, percent: int) -> None:
        """Write progress to the repository and the consumer; failures are logged only."""
        if self.repository is not None:
            try:
                self.repository.save_progress(ScanProgress(scan_id=scan_id, percent=percent, stage=stage))
            except StorageError as e:
                logger.warning(f"⚠️ Progress write failed for {scan_id}: {e}")

        if self.progress_consumer is not None:
            try:
                self.progress_consumer(scan_id, percent, stage)
            except Exception as e:
                logger.warning(f"⚠️ Progress consumer failed for {scan_id}: {type(e).__name__}")

    # Nodes

    def profiling(self, state: ScanGraphState) -> ScanGraphState:
        """Node: scrape the homepage and build the brand profile."""
        self.report_progress(state["scan_id"], "profiling", STAGE_PERCENT["profiling"])
        logger.info(f"🔍 Profiling {state['url']}...")

        page_text = self.scraper.fetch(state["url"]) if self.scraper is not None else ""
        state["profile"] = self.profiler.extract(state["scan_input"], page_text, state["url"])
        return state

    def generating_queries(self, state: ScanGraphState) -> ScanGraphState:
        """Node: build the fixed query panel for the scan."""
        self.report_progress(state["scan_id"], "generating_queries", STAGE_PERCENT["generating_queries"])

        plan = state["plan"]
        state["queries"] = self.generator.generate(
            state["profile"],
            state["scan_input"].buyer_questions,
            plan.max_queries,
        )
        logger.info(f"✓ Query panel ready: {len(state['queries'])} queries (cap {plan.max_queries})")
        return state

    def querying(self, state: ScanGraphState) -> ScanGraphState:
        """Node: fan out one call per (query, provider) pair under the plan's concurrency bound."""
        scan_id = state["scan_id"]
        self.report_progress(scan_id, "querying", STAGE_PERCENT["querying"])

        queries = state.get("queries", [])
        providers = state["providers"]
        concurrency = state["plan"].concurrency
        cancel_event = state.get("cancel_event")

        tasks = [
            partial(self._ask, self.providers[name], name, query, cancel_event)
            for query in queries
            for name in providers
        ]
        logger.info(
            f"🚀 Querying {len(queries)} queries × {len(providers)} providers "
            f"({len(tasks)} calls, concurrency {concurrency})"
        )

        state["responses"] = run_bounded(
            tasks,
            concurrency,
            cancel_event=cancel_event,
            on_result=self._progress_ticker(scan_id, len(tasks), cancel_event),
        )
        state["cancelled"] = bool(cancel_event is not None and cancel_event.is_set())

        errors = state.get("errors", [])
        for response in state["responses"]:
            code = f"{response.provider}:{response.error}"
            if response.error and code not in errors:
                errors.append(code)
        state["errors"] = errors

        succeeded = sum(1 for r in state["responses"] if r.ok)
        logger.info(f"✓ {succeeded}/{len(tasks)} provider calls succeeded")
        self.report_progress(scan_id, "querying", QUERYING_END_PERCENT)
        return state

    def analyzing(self, state: ScanGraphState) -> ScanGraphState:
        """Node: run mention detection for every collected response."""
        self.report_progress(state["scan_id"], "analyzing", STAGE_PERCENT["analyzing"])

        plan = state["plan"]
        profile = state["profile"]
        detector = MentionDetector(self.detector_llm, always_verify=plan.always_verify)

        # Responses already received are analyzed even after cancellation
        analyses = run_bounded(
            [partial(self._analyze, detector, response, profile) for response in state["responses"]],
            plan.concurrency,
        )

        query_order = {q.query_id: i for i, q in enumerate(state["queries"])}
        provider_order = {p: i for i, p in enumerate(state["providers"])}
        analyses.sort(key=lambda a: (query_order.get(a.response.query_id, 0), provider_order.get(a.provider, 0)))

        state["analyses"] = analyses
        mentioned = sum(1 for a in analyses if a.mentioned)
        logger.info(f"✓ Analyzed {len(analyses)} responses, {profile.brand_name} mentioned in {mentioned}")
        return state

    def scoring(self, state: ScanGraphState) -> ScanGraphState:
        """Node: score the scan, then update cross-scan competitor tracking."""
        scan_id = state["scan_id"]
        self.report_progress(scan_id, "scoring", STAGE_PERCENT["scoring"])

        profile = state["profile"]
        analyses = state["analyses"]
        errors = state.get("errors", [])

        score = score_scan(analyses, state["providers"], self.weights)
        state["score"] = score
        state["share_of_voice"] = compute_share_of_voice(profile.brand_name, analyses)
        state["deltas"] = None
        state["competitors"] = []

        if self.repository is not None:
            try:
                previous = find_previous_scan(self.repository, profile.domain, scan_id)
                state["deltas"] = compute_score_deltas(score, previous)
            except StorageError as e:
                logger.warning(f"⚠️ Scan history unavailable for {profile.domain}: {e}")
                errors.append("history_unavailable")

            try:
                state["competitors"] = update_competitor_tracking(profile.domain, analyses, self.repository)
            except StorageError as e:
                logger.warning(f"⚠️ Competitor tracking failed for {profile.domain}: {e}")
                errors.append("competitor_tracking_failed")
        else:
            state["deltas"] = compute_score_deltas(score, None)

        state["errors"] = errors
        return state

    def complete(self, state: ScanGraphState) -> ScanGraphState:
        """Node: assemble the ScanResult and persist it once."""
        responses = state["responses"]
        partial_run = state.get("cancelled", False) or any(not r.ok for r in responses)

        result = ScanResult(
            scan_id=state["scan_id"],
            status="partial" if partial_run else "complete",
            plan_tier=state["plan"].tier,
            providers=state["providers"],
            brand_profile=state["profile"],
            score=state["score"],
            query_count=len(state["queries"]),
            queries=state["queries"],
            analyses=state["analyses"],
            competitors=state.get("competitors", []),
            share_of_voice=state.get("share_of_voice"),
            deltas=state.get("deltas"),
            cancelled=state.get("cancelled", False),
            errors=state.get("errors", []),
        )
        state["result"] = result

        if self.repository is not None:
            try:
                self.repository.save_scan(result)
            except StorageError as e:
                logger.error(f"Final persist failed for {result.scan_id}: {e}")
                state["failure_code"] = ScanErrorCode.PERSISTENCE_ERROR.value
                return state

        self.report_progress(result.scan_id, "complete", STAGE_PERCENT["complete"])
        logger.info(f"✅ Scan {result.scan_id} {result.status}: score {result.score.final_score:.1f}")
        return state

    def failed(self, state: ScanGraphState) -> ScanGraphState:
        """Node: classify a scan that produced no usable response."""
        responses = state.get("responses", [])
        if state.get("cancelled"):
            code = ScanErrorCode.TIMEOUT
        elif len(state["providers"]) >= 2:
            code = ScanErrorCode.BOTH_PROVIDERS_FAILED
        else:
            code = ScanErrorCode.NO_RESULTS

        state["failure_code"] = code.value
        logger.error(f"❌ Scan {state['scan_id']} failed: {code.value} ({len(responses)} responses, none usable)")
        return state

    # Helpers

    @staticmethod
    def _ask(
        provider: LLMProvider,
        name: str,
        query: Query,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProviderResponse:
        """One (query, provider) call; every attempted pair yields a ProviderResponse."""
        try:
            result = provider.generate(query.text, system_prompt=QUERY_SYSTEM_PROMPT, cancel_event=cancel_event)
        except Exception as e:
            logger.error(f"{name} raised on {query.query_id}: {type(e).__name__}: {e}")
            result = ProviderResult(text=None, error="provider_error")
        return ProviderResponse(
            query_id=query.query_id,
            query_text=query.text,
            intent=query.intent,
            provider=name,
            text=result.text,
            latency_ms=result.latency_ms,
            error=result.error,
        )

    @staticmethod
    def _analyze(detector: MentionDetector, response: ProviderResponse, profile) -> MentionAnalysis:
        """Detection for one response; falls back to string matching if the detector raises."""
        try:
            return detector.analyze(response, profile)
        except Exception as e:
            logger.error(f"Detection raised on {response.provider}/{response.query_id}: {type(e).__name__}: {e}")
            if not response.ok:
                return MentionAnalysis(response=response, confidence="high", detection_method="none")
            return basic_analysis(response, strip_markdown(response.text), profile)

    def _progress_ticker(
        self,
        scan_id: str,
        total: int,
        cancel_event: Optional[threading.Event] = None,
    ) -> Callable[[ProviderResponse], None]:
        """Progress callback moving querying from 40% to 70% as calls finish."""
        lock = threading.Lock()
        state = {"done": 0, "last": STAGE_PERCENT["querying"]}
        span = QUERYING_END_PERCENT - STAGE_PERCENT["querying"]

        def tick(_response: ProviderResponse) -> None:
            # Calls abandoned by a cancelled run must not overwrite later stages
            if cancel_event is not None and cancel_event.is_set():
                return
            with lock:
                state["done"] += 1
                percent = STAGE_PERCENT["querying"] + int(span * state["done"] / max(total, 1))
                if percent > state["last"]:
                    state["last"] = percent
                    self.report_progress(scan_id, "querying", percent)

        return tick


def route_after_querying(state: ScanGraphState) -> str:
    """Conditional edge: analyze if any call succeeded, otherwise fail the scan."""
    if any(r.ok for r in state.get("responses", [])):
        return "analyzing"
    return "failed"
