"""Click recording and referral statistics."""

import logging

from app.config import ReferralConfig
from app.exceptions import InvalidCode
from app.models.click_event import ClickEvent
from app.models.user import User
from app.schemas.referral import ClickStats, CodeStats, DailyClicks, UserOut, WalletStats
from app.services.store import ReferralStore
from app.utils.links import build_signup_url
from app.utils.request_meta import DIRECT, UNKNOWN

logger = logging.getLogger(__name__)


def _or_sentinel(value: str | None, sentinel: str) -> str:
    value = (value or "").strip()
    return value or sentinel


class ClickRecorder:
    """Validates referral codes, appends click events and aggregates them."""

    def __init__(self, store: ReferralStore, config: ReferralConfig):
        self.store = store
        self.config = config

    @property
    def rejects_unknown_codes(self) -> bool:
        """True when the redirect hop should answer 404 for unknown codes."""
        return self.config.unknown_code_policy == "reject"

    def redirect_target(self, code: str | None = None) -> str:
        """Frontend signup URL the redirect hop sends visitors to."""
        return build_signup_url(self.config, code)

    async def record_click(
        self,
        code: str,
        ip: str | None = None,
        user_agent: str | None = None,
        referrer: str | None = None,
    ) -> ClickEvent:
        """
        Record a click for ``code``.

        Missing metadata is stored as ``unknown`` (ip, user agent) or
        ``direct`` (referrer).

        Args:
            code: Referral code (exact match)
            ip: Originating IP address
            user_agent: User-Agent header
            referrer: Referer header

        Returns:
            The stored click event

        Raises:
            InvalidCode: no user owns ``code``; nothing is written
        """
        user = await self.store.find_user_by_code(code)
        if not user:
            logger.warning(f"Click for unknown referral code: {code}")
            raise InvalidCode("Referral code not found", details={"code": code})

        click_event = await self.store.insert_click(
            user_id=user.id,
            referral_code=code,
            ip=_or_sentinel(ip, UNKNOWN),
            user_agent=_or_sentinel(user_agent, UNKNOWN),
            referrer=_or_sentinel(referrer, DIRECT),
        )

        logger.info(f"Recorded click for {code} from {click_event.ip}")
        return click_event

    async def get_stats(self, wallet_address: str) -> WalletStats:
        """
        Get click statistics for a wallet.

        Unknown wallets yield zero stats with ``found=False`` instead of an
        error, so dashboards can poll unconditionally.
        """
        user = await self.store.find_user_by_wallet((wallet_address or "").strip())
        if not user:
            return WalletStats(found=False, user=None, stats=ClickStats())

        return WalletStats(
            found=True,
            user=UserOut.model_validate(user),
            stats=await self._aggregate(user),
        )

    async def get_code_stats(self, code: str) -> CodeStats:
        """
        Get click statistics for a referral code.

        Raises:
            InvalidCode: no user owns ``code``
        """
        user = await self.store.find_user_by_code(code)
        if not user:
            raise InvalidCode("Affiliate not found", details={"code": code})

        return CodeStats(
            referral_code=user.referral_code,
            name=user.name,
            wallet_address=user.wallet_address,
            stats=await self._aggregate(user),
        )

    async def _aggregate(self, user: User) -> ClickStats:
        total = await self.store.count_clicks_by_user(user.id)
        unique = await self.store.count_distinct_ip_by_user(user.id)
        by_day = [
            DailyClicks(day=day, c=count)
            for day, count in await self.store.clicks_per_day_by_user(user.id)
        ]

        return ClickStats(total_clicks=total, unique_clicks=unique, clicks_by_day=by_day)
