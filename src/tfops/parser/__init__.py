"""Plan document loading."""

from .plan_loader import PlanLoader, load_plan

__all__ = ["PlanLoader", "load_plan"]
