"""Spending alerts and smart-analysis package."""

from fynance.insights.analyzer import InsightAnalyzer

__all__ = ["InsightAnalyzer"]
