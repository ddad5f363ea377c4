"""P4P calculation engine.

Only the pure calculators are exported here; ``P4PEngine`` lives in
``p4p_engine.calculators.engine`` because it depends on the ORM layer.
"""

from p4p_engine.calculators.config_resolver import ConfigurationResolver
from p4p_engine.calculators.line_builder import LineItemBuilder
from p4p_engine.calculators.performance_pay import calculate_performance_pay
from p4p_engine.calculators.reconciliation import reconcile_job

__all__ = [
    "ConfigurationResolver",
    "LineItemBuilder",
    "calculate_performance_pay",
    "reconcile_job",
]
