"""Achievement evaluation package."""

from fynance.achievements.evaluator import AchievementEvaluator

__all__ = ["AchievementEvaluator"]
