"""In-process order book holding listings and completed sales.

Nothing here is persisted; a restart starts with an empty market.
"""
import asyncio
import itertools
from typing import Any, Dict, List, Optional

class MarketBook:
    """Listings keyed by id plus an append-only list of sales."""
    
    def __init__(self):
        self.listings: Dict[int, Dict[str, Any]] = {}
        self.sales: List[Dict[str, Any]] = []
        self.lock = asyncio.Lock()
        self._listing_ids = itertools.count(1)
        self._sale_ids = itertools.count(1)
    
    def next_listing_id(self) -> int:
        return next(self._listing_ids)
    
    def next_sale_id(self) -> int:
        return next(self._sale_ids)
    
    def active_listings(self, riff_id: Optional[int] = None) -> List[Dict[str, Any]]:
        listings = [
            listing for listing in self.listings.values()
            if listing['isActive'] and (riff_id is None or listing['riffId'] == riff_id)
        ]
        return sorted(listings, key=lambda listing: listing['id'], reverse=True)
    
    def sales_for_riff(self, riff_id: int) -> List[Dict[str, Any]]:
        return [sale for sale in reversed(self.sales) if sale['riffId'] == riff_id]

_book: Optional[MarketBook] = None

def get_book() -> MarketBook:
    """Process-wide market book."""
    global _book
    if _book is None:
        _book = MarketBook()
    return _book
