"""
Fynance Core - Source Package

Gamification and smart-notification engine for a personal-finance app.
Takes a snapshot of accounts, cards, transactions and goals and derives
achievements, notifications, spending alerts and insights.

DESIGN PRINCIPLES:
1. Evaluation is pure: snapshot in, derived records out
2. Malformed data is excluded visibly, never propagated
3. Achievements only ever move forward
4. Every refresh is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Fynance Team"
