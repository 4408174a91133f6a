"""Shared request model configuration."""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class APIModel(BaseModel):
    """Request body accepting camelCase JSON keys (snake_case also accepted)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class WalletRequest(APIModel):
    """Body carrying only the acting wallet address."""
    wallet_address: str = Field(..., min_length=1, description="Wallet address of the acting user")
