"""WHERE/ORDER BY construction for riff listings."""
from decimal import Decimal
from typing import Any, List, Optional, Tuple

# sortBy value -> ORDER BY clause
SORT_ORDERS = {
    'newest': 'r.created_at DESC, r.id DESC',
    'price-asc': 'r.price ASC NULLS LAST, r.id DESC',
    'price-desc': 'r.price DESC NULLS LAST, r.id DESC',
    'title-asc': 'r.title ASC, r.id DESC',
    'title-desc': 'r.title DESC, r.id DESC'
}
DEFAULT_SORT = 'newest'

UNLOCK_COLUMNS = (
    'unlock_source_files',
    'unlock_remix_rights',
    'unlock_private_messages',
    'unlock_backstage_content'
)

def order_clause(sort_by: Optional[str]) -> str:
    """ORDER BY clause for a sortBy value; unknown values fall back to newest first."""
    return SORT_ORDERS.get(sort_by or DEFAULT_SORT, SORT_ORDERS[DEFAULT_SORT])

def build_riff_filters(
    genre: Optional[str] = None,
    mood: Optional[str] = None,
    instrument: Optional[str] = None,
    price_min: Optional[Decimal] = None,
    price_max: Optional[Decimal] = None,
    stakable: Optional[bool] = None,
    backstage: Optional[bool] = None,
    unlockable: Optional[bool] = None
) -> Tuple[str, List[Any]]:
    """Build a WHERE clause over the ``r`` alias.
    
    Returns:
        Tuple of (clause, params); clause is '' when nothing filters
    """
    conditions = []
    params: List[Any] = []
    
    def bind(value: Any) -> str:
        params.append(value)
        return f"${len(params)}"
    
    if genre:
        conditions.append(f"r.genre = {bind(genre)}")
    if mood:
        conditions.append(f"r.mood = {bind(mood)}")
    if instrument:
        conditions.append(f"r.instrument = {bind(instrument)}")
    if price_min is not None:
        conditions.append(f"r.price >= {bind(price_min)}")
    if price_max is not None:
        conditions.append(f"r.price <= {bind(price_max)}")
    if stakable is not None:
        conditions.append(f"r.is_stakable = {bind(stakable)}")
    if backstage is not None:
        conditions.append(f"r.unlock_backstage_content = {bind(backstage)}")
    if unlockable is True:
        conditions.append('(' + ' OR '.join(f"r.{col}" for col in UNLOCK_COLUMNS) + ')')
    elif unlockable is False:
        conditions.append('NOT (' + ' OR '.join(f"r.{col}" for col in UNLOCK_COLUMNS) + ')')
    
    clause = f"WHERE {' AND '.join(conditions)}" if conditions else ''
    return clause, params
