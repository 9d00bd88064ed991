"""
Data-access interfaces consumed by the comparison engine.

The engine only ever sees a fully hydrated RFQ. Storage lives behind these
repositories; the in-memory versions back the API in development and the
tests.
"""
import dataclasses
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from procureflow.services.comparison.models import RFQ, Quote


class RfqRepository(ABC):

    @abstractmethod
    def get(self, rfq_id: str) -> Optional[RFQ]:
        pass

    @abstractmethod
    def list_ids(self) -> List[str]:
        pass


class QuoteRepository(ABC):

    @abstractmethod
    def list_by_rfq(self, rfq_id: str) -> List[Quote]:
        """Quotes for the RFQ in submission-capture order."""
        pass


class InMemoryRfqRepository(RfqRepository):

    def __init__(self, rfqs: Iterable[RFQ] = ()):
        self._rfqs: Dict[str, RFQ] = {}
        for rfq in rfqs:
            self.add(rfq)

    def add(self, rfq: RFQ) -> None:
        self._rfqs[rfq.id] = rfq

    def get(self, rfq_id: str) -> Optional[RFQ]:
        return self._rfqs.get(rfq_id)

    def list_ids(self) -> List[str]:
        return list(self._rfqs)


class InMemoryQuoteRepository(QuoteRepository):

    def __init__(self, quotes: Iterable[Quote] = ()):
        self._quotes: List[Quote] = list(quotes)

    def add(self, quote: Quote) -> None:
        self._quotes.append(quote)

    def replace(self, quote: Quote) -> None:
        self._quotes = [quote if q.id == quote.id else q for q in self._quotes]

    def list_by_rfq(self, rfq_id: str) -> List[Quote]:
        return [q for q in self._quotes if q.rfq_id == rfq_id]


def load_rfq(
    rfq_repository: RfqRepository,
    quote_repository: Optional[QuoteRepository],
    rfq_id: str,
) -> Optional[RFQ]:
    """
    Hydrate an RFQ with its quotes.

    When a quote repository is given it is authoritative for the quote set;
    otherwise the quotes already on the RFQ are used.
    """
    rfq = rfq_repository.get(rfq_id)
    if rfq is None:
        return None
    if quote_repository is None:
        return rfq
    return dataclasses.replace(rfq, quotes=tuple(quote_repository.list_by_rfq(rfq_id)))


# Process-wide repositories used by the API (populated by db.seed in demo mode)
rfq_repository = InMemoryRfqRepository()
quote_repository = InMemoryQuoteRepository()


def get_rfq_repository() -> RfqRepository:
    """Dependency for the RFQ repository."""
    return rfq_repository


def get_quote_repository() -> QuoteRepository:
    """Dependency for the quote repository."""
    return quote_repository
