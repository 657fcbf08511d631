"""
Brand Profiler Agent

Builds the brand profile (aliases, category, competitors) a scan runs against.
"""

from agents.brand_profiler_agent.profiler import BrandProfiler, merge_profile


__all__ = ["BrandProfiler", "merge_profile"]
