"""
Query Generator Agent

Builds the buyer query panel for a scan from user questions, an LLM and templates.
"""

from agents.query_generator_agent.generator import QueryGenerator


__all__ = ["QueryGenerator"]
