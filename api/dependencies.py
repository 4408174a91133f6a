"""Manager providers for route handlers.

Routes receive their managers through ``Depends`` so tests can swap them via
``app.dependency_overrides``.
"""
from activity import ActivityManager
from catalog import GenreManager, TagManager
from chain import NFTContract, get_contract
from favorites import FavoriteManager
from market import MarketManager
from riff_collections import CollectionManager
from riffs import RiffManager
from staking import StakeManager, StakingSettingsManager
from storage import MediaStore, get_media_store
from tipping import TipManager
from users import UserManager

def get_user_manager() -> UserManager:
    return UserManager()

def get_riff_manager() -> RiffManager:
    return RiffManager(ipfs=get_media_store().ipfs, contract=get_contract())

def get_collection_manager() -> CollectionManager:
    return CollectionManager()

def get_stake_manager() -> StakeManager:
    return StakeManager()

def get_staking_settings_manager() -> StakingSettingsManager:
    return StakingSettingsManager()

def get_tip_manager() -> TipManager:
    return TipManager()

def get_favorite_manager() -> FavoriteManager:
    return FavoriteManager()

def get_tag_manager() -> TagManager:
    return TagManager()

def get_genre_manager() -> GenreManager:
    return GenreManager()

def get_market_manager() -> MarketManager:
    return MarketManager()

def get_activity_manager() -> ActivityManager:
    return ActivityManager()

def get_media() -> MediaStore:
    return get_media_store()

def get_chain() -> NFTContract:
    return get_contract()
