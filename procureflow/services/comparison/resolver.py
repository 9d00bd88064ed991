"""
Best-price resolver.

Tie-break policies:
    first_submitted_wins: quotes ordered by submitted_at (quotes without a
        timestamp go last), then by their position in RFQ.quotes. The first
        candidate at the minimum total price wins.
    quote_order: position in RFQ.quotes only.

Both are deterministic; the same RFQ always resolves to the same supplier.
"""
import enum
from datetime import timezone
from decimal import Decimal
from typing import List, Optional

from procureflow.services.comparison.models import RFQ, PriceCandidate, BestPrice


class TieBreakPolicy(str, enum.Enum):
    FIRST_SUBMITTED_WINS = "first_submitted_wins"
    QUOTE_ORDER = "quote_order"


DEFAULT_POLICY = TieBreakPolicy.FIRST_SUBMITTED_WINS


def _submission_key(candidate: PriceCandidate):
    submitted_at = candidate.submitted_at
    if submitted_at is None:
        return (1, 0.0, candidate.position)
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    return (0, submitted_at.timestamp(), candidate.position)


def collect_candidates(
    rfq: RFQ,
    line_item_id: str,
    policy: TieBreakPolicy = DEFAULT_POLICY,
) -> List[PriceCandidate]:
    """Every responding quote's price for the line, in tie-break order."""
    candidates = []
    for position, quote in enumerate(rfq.quotes):
        if not quote.is_responding:
            continue
        item = quote.get_line(line_item_id)
        if item is None:
            continue
        candidates.append(PriceCandidate(
            supplier_id=quote.supplier_id,
            quote_id=quote.id,
            unit_price=item.unit_price,
            total_price=item.total_price,
            lead_time_days=item.lead_time_days,
            submitted_at=quote.submitted_at,
            position=position,
        ))

    if TieBreakPolicy(policy) == TieBreakPolicy.FIRST_SUBMITTED_WINS:
        candidates.sort(key=_submission_key)
    return candidates


def resolve_best_price(
    rfq: RFQ,
    line_item_id: str,
    policy: TieBreakPolicy = DEFAULT_POLICY,
) -> Optional[BestPrice]:
    """Minimum total price for the line and every supplier that achieves it."""
    candidates = collect_candidates(rfq, line_item_id, policy)
    if not candidates:
        return None

    winner = candidates[0]
    for candidate in candidates[1:]:
        # Strict comparison keeps the earliest candidate on a tie
        if candidate.total_price < winner.total_price:
            winner = candidate

    tied = tuple(c.supplier_id for c in candidates if c.total_price == winner.total_price)
    return BestPrice(
        line_item_id=line_item_id,
        total_price=winner.total_price,
        winner=winner,
        supplier_ids=tied,
    )


def find_cheapest_candidate(
    rfq: RFQ,
    line_item_id: str,
    policy: TieBreakPolicy = DEFAULT_POLICY,
) -> Optional[PriceCandidate]:
    best = resolve_best_price(rfq, line_item_id, policy)
    return best.winner if best else None


def find_cheapest(
    rfq: RFQ,
    line_item_id: str,
    policy: TieBreakPolicy = DEFAULT_POLICY,
) -> Optional[str]:
    """Supplier id with the lowest total price for the line, or None if unquoted."""
    candidate = find_cheapest_candidate(rfq, line_item_id, policy)
    return candidate.supplier_id if candidate else None


def best_total_price(rfq: RFQ, line_item_id: str) -> Optional[Decimal]:
    """Lowest quoted total for the line. Independent of tie-break policy."""
    best = resolve_best_price(rfq, line_item_id, TieBreakPolicy.QUOTE_ORDER)
    return best.total_price if best else None
