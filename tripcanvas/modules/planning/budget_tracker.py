"""
modules/planning/budget_tracker.py
------------------------------------
Aggregate spend of the itinerary against the trip budget.

  total_spent       Σ price   (missing / non-numeric / negative → 0)
  remaining         budget − total_spent         (may go negative)
  progress_percent  total_spent / budget × 100   (0 when budget ≤ 0; unclamped)

Only the visual fill of a progress bar is clamped to [0, 100]; the numeric
progress and remaining values are always reported as computed, including
when the trip is over budget.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from tripcanvas.schemas.itinerary import ItineraryItem, as_price


@dataclass
class BudgetSummary:
    """Snapshot of budget usage for display (amounts in CURRENCY_UNIT)."""
    budget:           float = 0.0
    spent:            float = 0.0
    remaining:        float = 0.0
    progress_percent: float = 0.0
    fill_percent:     float = 0.0     # clamped copy of progress_percent
    over_budget:      bool  = False
    by_category:      dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "budget":          self.budget,
            "totalSpent":      self.spent,
            "remaining":       self.remaining,
            "progressPercent": self.progress_percent,
            "fillPercent":     self.fill_percent,
            "overBudget":      self.over_budget,
            "byCategory":      dict(self.by_category),
        }


def _price_of(item: ItineraryItem | Mapping[str, Any]) -> float:
    if isinstance(item, ItineraryItem):
        return as_price(item.price)
    return as_price(item.get("price"))


def total_spent(items: Iterable[ItineraryItem | Mapping[str, Any]]) -> float:
    return sum(_price_of(item) for item in items)


def remaining(budget: float, items: Iterable[ItineraryItem | Mapping[str, Any]]) -> float:
    return budget - total_spent(items)


def progress_percent(budget: float, items: Iterable[ItineraryItem | Mapping[str, Any]]) -> float:
    if budget <= 0:
        return 0.0
    return total_spent(items) / budget * 100


def spent_by_category(items: Iterable[ItineraryItem]) -> dict[str, float]:
    """Spend per item category; uncategorised items fall under "Other"."""
    out: dict[str, float] = {}
    for item in items:
        key = item.category or "Other"
        out[key] = out.get(key, 0.0) + _price_of(item)
    return out


def summarize(budget: float, items: Iterable[ItineraryItem]) -> BudgetSummary:
    items = list(items)
    spent = total_spent(items)
    progress = spent / budget * 100 if budget > 0 else 0.0
    return BudgetSummary(
        budget=budget,
        spent=spent,
        remaining=budget - spent,
        progress_percent=progress,
        fill_percent=min(max(progress, 0.0), 100.0),
        over_budget=spent > budget,
        by_category=spent_by_category(items),
    )
