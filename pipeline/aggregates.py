"""
Expense aggregates over a filtered list.

Totals are computed over exactly the records passed in, so the summary shown
beside a filtered expense table always agrees with the rows in it. Amounts
that do not parse as numbers count as 0.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from utils.strings import parse_amount

TOP_CATEGORY_LIMIT = 5


@dataclass
class ExpenseSummary:
    """Aggregates of one expense list.

    ``by_category`` keeps categories in first-encountered order;
    ``top_categories`` holds at most five (category, amount) pairs by
    descending amount, ties in first-encountered order.
    """

    total: float = 0.0
    count: int = 0
    by_category: dict[str, float] = field(default_factory=dict)
    top_categories: list[tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "count": self.count,
            "by_category": dict(self.by_category),
            "top_categories": [
                {"category": c, "amount": a} for c, a in self.top_categories
            ],
        }


def _category_key(value: Any) -> str:
    return "" if value is None else str(value)


def summarize_expenses(records: Iterable[dict[str, Any]],
                       top_n: int = TOP_CATEGORY_LIMIT) -> ExpenseSummary:
    """Compute total, per-category sums and top categories.

    Example:
        Seeds 250, Fertilizer 175.5, Seeds 50 ->
        total 475.5, {"Seeds": 300, "Fertilizer": 175.5},
        top [("Seeds", 300), ("Fertilizer", 175.5)]
    """
    total = 0.0
    count = 0
    by_category: dict[str, float] = {}
    for record in records:
        amount = parse_amount(record.get("amount")) or 0.0
        category = _category_key(record.get("category"))
        total += amount
        count += 1
        by_category[category] = by_category.get(category, 0.0) + amount

    top = sorted(by_category.items(), key=lambda kv: kv[1], reverse=True)[:top_n]
    return ExpenseSummary(
        total=total,
        count=count,
        by_category=by_category,
        top_categories=top,
    )
