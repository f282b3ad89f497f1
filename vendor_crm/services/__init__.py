"""
Service layer for the vendor CRM backend.

This package contains the auto-approval rule store, the tier policy and
the evaluator that decides whether a delivery request can skip manual
review.
"""

from .rule_evaluator import DeliveryRequest, EvaluationResult, evaluate, evaluate_for_tenant

__all__ = ["DeliveryRequest", "EvaluationResult", "evaluate", "evaluate_for_tenant"]
