"""
Scan orchestrator.

Entry point of the pipeline: `run_scan(scan_id, url, scan_input) -> ScanResult`.
The orchestrator resolves the plan tier once, filters providers against
the plan allowlist, runs the scan workflow and turns terminal failures
into ScanError codes. All collaborators are injected; `build_orchestrator`
wires the production ones from settings.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence

from agents.brand_profiler_agent import BrandProfiler
from agents.llm_providers import (
    LLMProvider,
    ProviderNotConfiguredError,
    available_providers,
    build_provider,
    build_query_providers,
)
from agents.query_generator_agent import QueryGenerator
from agents.scan_orchestrator.errors import ScanError, ScanErrorCode
from agents.scan_orchestrator.graph import create_scan_graph
from agents.scan_orchestrator.models import ScanGraphState
from agents.scan_orchestrator.nodes import STAGE_PERCENT, ScanNodes
from agents.scan_orchestrator.shadow import ShadowRunner, compare_verified_detection
from agents.mention_detector_agent import MentionDetector
from agents.scoring_engine import ScoringWeights
from config.plans import get_plan_config, resolve_plan_providers
from config.settings import settings
from models.schemas import ScanInput, ScanResult
from storage.repository import StorageError
from utils.entitlements import EntitlementResolver, StaticEntitlementResolver, resolve_plan_tier

logger = logging.getLogger(__name__)


class ScanOrchestrator:
    """
    Run visibility scans with injected collaborators.

    Args:
        providers: Query-answering providers by name (openai, anthropic, google)
        profiler_llm: LLM for profile extraction, or None for input-only profiles
        detector_llm: LLM for detection verification, or None for string matching only
        query_llm: LLM for query authoring, or None for templates only
        repository: ScanRepository for results, progress and competitor records
        scraper: Homepage scraper (fetch(url) -> text)
        entitlements: Plan tier resolver (without one every scan runs on the free tier)
        progress_consumer: Optional callback(scan_id, percent, stage)
        shadow_runner: Optional ShadowRunner for background comparison runs
        weights: Scoring weights (defaults to settings)
    """

    def __init__(
        self,
        providers: Dict[str, LLMProvider],
        profiler_llm: Optional[LLMProvider] = None,
        detector_llm: Optional[LLMProvider] = None,
        query_llm: Optional[LLMProvider] = None,
        repository=None,
        scraper=None,
        entitlements: Optional[EntitlementResolver] = None,
        progress_consumer: Optional[Callable[[str, int, str], None]] = None,
        shadow_runner: Optional[ShadowRunner] = None,
        weights: Optional[ScoringWeights] = None,
    ):
        self.providers = dict(providers)
        self.detector_llm = detector_llm
        self.repository = repository
        self.entitlements = entitlements
        self.shadow_runner = shadow_runner
        self.nodes = ScanNodes(
            providers=self.providers,
            profiler=BrandProfiler(profiler_llm),
            generator=QueryGenerator(query_llm),
            detector_llm=detector_llm,
            repository=repository,
            scraper=scraper,
            progress_consumer=progress_consumer,
            weights=weights or ScoringWeights.from_settings(),
        )
        self._graph = None

    @property
    def graph(self):
        if self._graph is None:
            self._graph = create_scan_graph(self.nodes)
        return self._graph

    def run_scan(
        self,
        scan_id: str,
        url: str,
        scan_input: ScanInput,
        user_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        requested_providers: Optional[Sequence[str]] = None,
    ) -> ScanResult:
        """
        Run one scan end to end.

        Args:
            scan_id: Scan identifier
            url: Website to profile
            scan_input: Validated, immutable scan input
            user_id: User whose plan tier applies
            cancel_event: Set by the caller to stop the scan (wall-clock budget)
            requested_providers: Providers to query (defaults to the plan's allowlist)

        Returns:
            ScanResult, complete or partial

        Raises:
            ScanError: CONFIG_ERROR, NO_RESULTS, BOTH_PROVIDERS_FAILED,
                TIMEOUT or PERSISTENCE_ERROR (with the in-memory result attached)
        """
        if not self.providers:
            logger.error("No query providers configured")
            raise ScanError(ScanErrorCode.CONFIG_ERROR, "No AI provider credentials are configured.")

        # Plan tier and concurrency are fixed for the whole scan
        tier = resolve_plan_tier(self.entitlements, user_id, scan_input.plan_tier)
        plan = get_plan_config(tier)
        providers = resolve_plan_providers(
            requested_providers or plan.providers,
            plan,
            list(self.providers.keys()),
        )
        if not providers:
            raise ScanError(ScanErrorCode.CONFIG_ERROR, "No AI provider is available for this plan.")

        logger.info(f"🚀 Starting scan {scan_id} for {scan_input.brand_name}")
        logger.info(f"   Plan: {plan.tier} (queries {plan.max_queries}, concurrency {plan.concurrency})")
        logger.info(f"   Providers: {', '.join(providers)}")

        self.nodes.report_progress(scan_id, "pending", STAGE_PERCENT["pending"])

        initial_state: ScanGraphState = {
            "scan_id": scan_id,
            "url": url,
            "scan_input": scan_input,
            "plan": plan,
            "providers": providers,
            "cancel_event": cancel_event,
            "cancelled": False,
            "errors": [],
            "failure_code": None,
        }

        state = initial_state
        for step_output in self.graph.stream(initial_state):
            node_name = list(step_output.keys())[0]
            state = step_output[node_name]
            logger.debug(f"Scan {scan_id}: finished {node_name}")

        failure_code = state.get("failure_code")
        if failure_code:
            self.nodes.report_progress(scan_id, "failed", self._last_percent(scan_id))
            raise ScanError(ScanErrorCode(failure_code), result=state.get("result"))

        result = state["result"]
        if self.shadow_runner is not None:
            shadow_detector = MentionDetector(self.detector_llm, always_verify=True)
            self.shadow_runner.spawn(compare_verified_detection, result, shadow_detector)
        return result

    def list_recent_scans(self, brand_domain: str, limit: int = 10) -> List[ScanResult]:
        """Most recent scans for a brand, newest first."""
        if self.repository is None:
            return []
        return self.repository.list_recent_scans(brand_domain, limit)

    def _last_percent(self, scan_id: str) -> int:
        if self.repository is None:
            return 0
        try:
            progress = self.repository.get_progress(scan_id)
        except StorageError as e:
            logger.warning(f"⚠️ Could not read progress for {scan_id}: {e}")
            return 0
        return progress.percent if progress else 0


def build_orchestrator(repository=None, progress_consumer=None, entitlements=None) -> ScanOrchestrator:
    """
    Wire a ScanOrchestrator from settings.

    Raises:
        ScanError: CONFIG_ERROR when no query provider has credentials or
            the profiling/detection provider is not configured
    """
    providers = build_query_providers(available_providers())
    if not providers:
        raise ScanError(ScanErrorCode.CONFIG_ERROR, "No AI provider credentials are configured.")

    try:
        profiler_llm = build_provider(settings.PROFILING_PROVIDER, "profiling")
        detector_llm = build_provider(settings.DETECTION_PROVIDER, "detection")
        query_llm = build_provider(settings.QUERY_GENERATION_PROVIDER, "query")
    except (ProviderNotConfiguredError, ValueError) as e:
        logger.error(f"Profiling/detection provider not configured: {e}")
        raise ScanError(ScanErrorCode.CONFIG_ERROR) from e

    if repository is None:
        from storage.redis_repository import RedisScanRepository
        repository = RedisScanRepository()

    from utils.scraper import FirecrawlScraper

    return ScanOrchestrator(
        providers=providers,
        profiler_llm=profiler_llm,
        detector_llm=detector_llm,
        query_llm=query_llm,
        repository=repository,
        scraper=FirecrawlScraper() if settings.FIRECRAWL_API_KEY else None,
        entitlements=entitlements or StaticEntitlementResolver.from_settings(),
        progress_consumer=progress_consumer,
        shadow_runner=ShadowRunner() if settings.SHADOW_SCAN_ENABLED else None,
    )


def run_scan(
    scan_id: str,
    url: str,
    scan_input: ScanInput,
    user_id: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> ScanResult:
    """
    Run a scan with production collaborators and the configured wall-clock budget.

    Args:
        scan_id: Scan identifier
        url: Website to profile
        scan_input: Validated scan input
        user_id: User whose plan tier applies
        cancel_event: Optional external cancel signal

    Returns:
        ScanResult
    """
    cancel_event = cancel_event or threading.Event()
    timer = threading.Timer(settings.SCAN_TIMEOUT_SECONDS, cancel_event.set)
    timer.daemon = True
    timer.start()
    try:
        return build_orchestrator().run_scan(scan_id, url, scan_input, user_id=user_id, cancel_event=cancel_event)
    finally:
        timer.cancel()
