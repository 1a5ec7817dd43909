"""SLA-risk-aware route consolidation engine."""

__version__ = "0.1.0"
