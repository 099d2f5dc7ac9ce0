from __future__ import annotations

from collections.abc import Iterable

from nestegg.schemas.stats import CategoryStatisticsFigures
from nestegg.services.ledger import LedgerAggregate, TransactionLedger


def combine(direct: LedgerAggregate, descendants: Iterable[LedgerAggregate]) -> CategoryStatisticsFigures:
    """Sum direct and descendant figures. Totals are exact integer sums."""

    descendant_count = 0
    descendant_amount = 0
    children_count = 0
    for agg in descendants:
        descendant_count += agg.count
        descendant_amount += agg.sum_amount
        children_count += 1

    return CategoryStatisticsFigures(
        directTransactions=direct.count,
        directAmount=direct.sum_amount,
        descendantTransactions=descendant_count,
        descendantAmount=descendant_amount,
        totalTransactions=direct.count + descendant_count,
        totalAmount=direct.sum_amount + descendant_amount,
        childrenCount=children_count,
    )


class StatisticsAggregator:
    def __init__(self, ledger: TransactionLedger) -> None:
        self.ledger = ledger

    def summarize(self, category_id: str, descendant_ids: Iterable[str]) -> CategoryStatisticsFigures:
        direct = self.ledger.aggregate_transactions_for_category(category_id)
        return combine(
            direct,
            (self.ledger.aggregate_transactions_for_category(d) for d in descendant_ids),
        )
