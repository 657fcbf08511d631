"""
LangGraph workflow definition for a scan.

START → profiling → generating_queries → querying
      → [conditional: any usable response?]
           YES → analyzing → scoring → complete → END
           NO  → failed → END
"""

import logging

from langgraph.graph import END, START, StateGraph

from agents.scan_orchestrator.models import ScanGraphState
from agents.scan_orchestrator.nodes import ScanNodes, route_after_querying

logger = logging.getLogger(__name__)


def create_scan_graph(nodes: ScanNodes):
    """
    Create the scan workflow bound to a set of node collaborators.

    Args:
        nodes: ScanNodes carrying providers, profiler, repository etc.

    Returns:
        Compiled LangGraph workflow
    """
    workflow = StateGraph(ScanGraphState)

    workflow.add_node("profiling", nodes.profiling)
    workflow.add_node("generating_queries", nodes.generating_queries)
    workflow.add_node("querying", nodes.querying)
    workflow.add_node("analyzing", nodes.analyzing)
    workflow.add_node("scoring", nodes.scoring)
    workflow.add_node("complete", nodes.complete)
    workflow.add_node("failed", nodes.failed)

    workflow.add_edge(START, "profiling")
    workflow.add_edge("profiling", "generating_queries")
    workflow.add_edge("generating_queries", "querying")

    workflow.add_conditional_edges(
        "querying",
        route_after_querying,
        {
            "analyzing": "analyzing",
            "failed": "failed",
        }
    )

    workflow.add_edge("analyzing", "scoring")
    workflow.add_edge("scoring", "complete")
    workflow.add_edge("complete", END)
    workflow.add_edge("failed", END)

    return workflow.compile()
