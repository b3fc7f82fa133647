"""Referral-related Pydantic schemas.

Wire format uses camelCase (``walletAddress``, ``totalClicks``); Python code
uses the snake_case field names. Both are accepted on input.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.common import PaginatedResponse


class CamelModel(BaseModel):
    """Base model serializing field names as camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SignupRequest(CamelModel):
    """Request schema for affiliate signup.

    Fields are optional here so blank/missing values reach the issuer and
    are reported as INVALID_INPUT rather than a schema error.
    """

    name: str | None = Field(None, description="Display name")
    wallet_address: str | None = Field(None, description="Wallet address (case-sensitive)")


class UserOut(CamelModel):
    """Public view of an affiliate user."""

    id: UUID
    name: str
    wallet_address: str
    referral_code: str
    referral_link: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SignupResponse(CamelModel):
    """Response schema for signup."""

    success: bool = True
    message: str
    user: UserOut


class DailyClicks(CamelModel):
    """Click count for one UTC calendar day."""

    day: str = Field(..., description="UTC day as YYYY-MM-DD")
    c: int = Field(..., description="Clicks recorded that day")


class ClickStats(CamelModel):
    """Aggregated click statistics for one affiliate."""

    total_clicks: int = 0
    unique_clicks: int = 0
    clicks_by_day: list[DailyClicks] = Field(default_factory=list)


class WalletStats(CamelModel):
    """Stats lookup result for a wallet. ``found`` is False for unknown wallets."""

    found: bool
    user: UserOut | None = None
    stats: ClickStats = Field(default_factory=ClickStats)


class UserStatsResponse(WalletStats):
    """Response schema for stats by wallet (never an error for unknown wallets)."""

    success: bool = True
    message: str


class CodeStats(CamelModel):
    """Stats lookup result for a referral code."""

    referral_code: str
    name: str
    wallet_address: str
    stats: ClickStats


class CodeStatsResponse(CodeStats):
    """Response schema for stats by referral code."""

    success: bool = True


class TrackClickRequest(CamelModel):
    """Client-reported click (query-parameter deployments)."""

    code: str = Field(..., description="Referral code taken from ?ref=")


class TrackClickResponse(CamelModel):
    """Response schema for a recorded click."""

    success: bool = True
    referral_code: str


class UserListResponse(PaginatedResponse):
    """Paginated affiliate listing."""

    items: list[UserOut]
