"""Market module for secondary sales of minted riffs.

Listings and sales live in the in-memory MarketBook; only users and riffs are
read from the database.
"""

import copy
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Any

from config import settings_conf
from database import get_pool
from database.lib.records import to_number
from riffs import RiffNotFoundError
from staking.lifecycle import utcnow
from users import fetch_user
from .book import MarketBook, get_book

logger = logging.getLogger(__name__)

__all__ = [
    'MarketManager', 'MarketBook', 'get_book', 'MarketError', 'ListingNotFoundError',
    'NotSellerError', 'RiffNotListableError', 'ListingInactiveError', 'SelfPurchaseError',
    'InvalidPriceError'
]

class MarketError(Exception):
    """Base exception for market operations."""
    pass

class ListingNotFoundError(MarketError, LookupError):
    """Raised when a listing is not found."""
    pass

class NotSellerError(MarketError, PermissionError):
    """Raised when someone other than the creator lists a riff."""
    pass

class RiffNotListableError(MarketError):
    """Raised when listing a riff that has not been minted."""
    pass

class ListingInactiveError(MarketError):
    """Raised when buying a deactivated listing."""
    pass

class SelfPurchaseError(MarketError):
    """Raised when a seller tries to buy their own listing."""
    pass

class InvalidPriceError(MarketError):
    """Raised when a price is not positive."""
    pass

def _seller_block(user: Any) -> Dict[str, Any]:
    return {
        'id': user['id'],
        'name': user['name'],
        'walletAddress': user['wallet_address'],
        'avatar': user['avatar']
    }

def _check_price(price: Any) -> Decimal:
    price = Decimal(str(price))
    if price <= 0:
        raise InvalidPriceError("Price must be positive")
    return price

class MarketManager:
    """Manager class for marketplace listings and sales."""
    
    def __init__(self, pool=None, book: Optional[MarketBook] = None):
        """Initialize the market manager.
        
        Args:
            pool: Optional database pool. If not provided, will get from database module.
            book: Listing/sale store (defaults to the process-wide book)
        """
        self.pool = pool
        self.book = book or get_book()
    
    async def ensure_pool(self):
        """Ensure we have a database pool."""
        if not self.pool:
            self.pool = await get_pool()
    
    async def list_listings(self, riff_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Active listings, newest first, optionally for one riff."""
        return copy.deepcopy(self.book.active_listings(riff_id))
    
    async def get_listing(self, listing_id: int) -> Dict[str, Any]:
        """Get a listing by id.
        
        Raises:
            ListingNotFoundError: If the listing does not exist
        """
        listing = self.book.listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError("Listing not found")
        return copy.deepcopy(listing)
    
    async def get_sales_history(self, riff_id: int) -> List[Dict[str, Any]]:
        """Completed sales of a riff, newest first."""
        return copy.deepcopy(self.book.sales_for_riff(riff_id))
    
    async def create_listing(
        self,
        riff_id: int,
        seller_wallet: str,
        price: Decimal,
        currency: Optional[str] = None
    ) -> Dict[str, Any]:
        """List a minted riff for sale.
        
        Raises:
            InvalidPriceError: If the price is not positive
            UserNotFoundError: If the seller does not exist
            RiffNotFoundError: If the riff does not exist
            NotSellerError: If the seller did not create the riff
            RiffNotListableError: If the riff is not minted
        """
        price = _check_price(price)
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            seller = await fetch_user(conn, seller_wallet)
            riff = await conn.fetchrow(
                'SELECT id, title, creator_id, is_nft, token_id FROM riffs WHERE id = $1',
                riff_id
            )
            
        if not riff:
            raise RiffNotFoundError("Riff not found")
        if riff['creator_id'] != seller['id']:
            raise NotSellerError("Only the creator can list this riff")
        if not riff['is_nft']:
            raise RiffNotListableError("Riff must be minted as an NFT before listing")
        
        now = utcnow().isoformat()
        async with self.book.lock:
            listing = {
                'id': self.book.next_listing_id(),
                'riffId': riff['id'],
                'riffTitle': riff['title'],
                'tokenId': riff['token_id'],
                'seller': _seller_block(seller),
                'price': to_number(price),
                'currency': currency or settings_conf['default_currency'],
                'isActive': True,
                'createdAt': now,
                'updatedAt': now
            }
            self.book.listings[listing['id']] = listing
            
        logger.info(f"Created listing {listing['id']} for riff {riff_id} by {seller_wallet}")
        return {'message': 'Listing created successfully', 'listing': copy.deepcopy(listing)}
    
    async def update_listing(
        self,
        listing_id: int,
        price: Optional[Decimal] = None,
        currency: Optional[str] = None,
        is_active: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Change price, currency or active flag of a listing.
        
        Raises:
            ListingNotFoundError: If the listing does not exist
            InvalidPriceError: If the new price is not positive
        """
        if price is not None:
            price = _check_price(price)
        
        async with self.book.lock:
            listing = self.book.listings.get(listing_id)
            if listing is None:
                raise ListingNotFoundError("Listing not found")
            if price is not None:
                listing['price'] = to_number(price)
            if currency is not None:
                listing['currency'] = currency
            if is_active is not None:
                listing['isActive'] = is_active
            listing['updatedAt'] = utcnow().isoformat()
            
        logger.info(f"Updated listing {listing_id}")
        return {'message': 'Listing updated successfully', 'listing': copy.deepcopy(listing)}
    
    async def buy(self, listing_id: int, buyer_wallet: str) -> Dict[str, Any]:
        """Buy a listed riff: records a sale and removes the listing.
        
        Raises:
            UserNotFoundError: If the buyer does not exist
            ListingNotFoundError: If the listing does not exist
            ListingInactiveError: If the listing is deactivated
            SelfPurchaseError: If the buyer is the seller
        """
        await self.ensure_pool()
        
        async with self.pool.acquire() as conn:
            buyer = await fetch_user(conn, buyer_wallet, "Buyer not found")
            
        async with self.book.lock:
            listing = self.book.listings.get(listing_id)
            if listing is None:
                raise ListingNotFoundError("Listing not found")
            if not listing['isActive']:
                raise ListingInactiveError("Listing is not active")
            if listing['seller']['id'] == buyer['id']:
                raise SelfPurchaseError("You cannot buy your own listing")
            
            sale = {
                'id': self.book.next_sale_id(),
                'listingId': listing['id'],
                'riffId': listing['riffId'],
                'seller': listing['seller'],
                'buyer': _seller_block(buyer),
                'price': listing['price'],
                'currency': listing['currency'],
                'createdAt': utcnow().isoformat()
            }
            self.book.sales.append(sale)
            del self.book.listings[listing_id]
            
        logger.info(
            f"Sale {sale['id']}: riff {sale['riffId']} sold to {buyer_wallet} "
            f"for {sale['price']} {sale['currency']}"
        )
        return {'message': 'Purchase successful', 'sale': copy.deepcopy(sale)}
