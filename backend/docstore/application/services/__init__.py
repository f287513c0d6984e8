from .query_engine import QueryEngine
from .rule_expressions import EvaluationContext, compile_rule, evaluate_rule
from .rule_engine import RuleEngine
from .auth_service import AuthService
from .data_service import DataService

__all__ = [
    "QueryEngine",
    "EvaluationContext",
    "compile_rule",
    "evaluate_rule",
    "RuleEngine",
    "AuthService",
    "DataService",
]
