"""Batch analyzers over assignment history."""

from p4p_engine.analyzers.achievements import (
    AchievementAnalyzer,
    AchievementRuleRegistry,
    default_registry,
)
from p4p_engine.analyzers.compliance import P4PComplianceAnalyzer

__all__ = [
    "AchievementAnalyzer",
    "AchievementRuleRegistry",
    "default_registry",
    "P4PComplianceAnalyzer",
]
