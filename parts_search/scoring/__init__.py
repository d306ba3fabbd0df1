"""Relevance scoring"""

from .relevance_scorer import RelevanceScorer, rank

__all__ = ["RelevanceScorer", "rank"]
