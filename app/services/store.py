"""Referral store: persistence contract and its SQLAlchemy implementation."""

import logging
from datetime import date, datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateKey, StorageError
from app.models.click_event import ClickEvent
from app.models.user import User

logger = logging.getLogger(__name__)


class ReferralStore(Protocol):
    """Lookup/insert/aggregate operations the issuer and recorder rely on."""

    async def find_user_by_wallet(self, wallet_address: str) -> User | None: ...

    async def find_user_by_code(self, code: str) -> User | None: ...

    async def insert_user(
        self,
        name: str,
        wallet_address: str,
        referral_code: str,
        referral_link: str,
    ) -> User: ...

    async def insert_click(
        self,
        user_id: UUID,
        referral_code: str,
        ip: str,
        user_agent: str,
        referrer: str,
    ) -> ClickEvent: ...

    async def count_clicks_by_user(self, user_id: UUID) -> int: ...

    async def count_distinct_ip_by_user(self, user_id: UUID) -> int: ...

    async def clicks_per_day_by_user(self, user_id: UUID) -> list[tuple[str, int]]: ...

    async def list_users(self, offset: int = 0, limit: int = 25) -> list[User]: ...

    async def count_users(self) -> int: ...


def _day_key(value: str | date | datetime) -> str:
    """Normalize a driver's DATE result to ``YYYY-MM-DD``."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)[:10]


class SQLAlchemyReferralStore:
    """ReferralStore backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_user_by_wallet(self, wallet_address: str) -> User | None:
        try:
            result = await self.db.execute(
                select(User).where(User.wallet_address == wallet_address)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Wallet lookup failed for {wallet_address}: {str(e)}")
            raise StorageError("Failed to look up user by wallet") from e

    async def find_user_by_code(self, code: str) -> User | None:
        try:
            result = await self.db.execute(select(User).where(User.referral_code == code))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Code lookup failed for {code}: {str(e)}")
            raise StorageError("Failed to look up user by referral code") from e

    async def insert_user(
        self,
        name: str,
        wallet_address: str,
        referral_code: str,
        referral_link: str,
    ) -> User:
        """
        Insert a user inside a savepoint.

        Raises:
            DuplicateKey: wallet address or referral code already taken
            StorageError: any other database failure
        """
        now = datetime.now(timezone.utc)
        user = User(
            id=uuid4(),
            name=name,
            wallet_address=wallet_address,
            referral_code=referral_code,
            referral_link=referral_link,
            created_at=now,
            updated_at=now,
        )

        try:
            async with self.db.begin_nested():
                self.db.add(user)
                await self.db.flush()
        except IntegrityError as e:
            # Savepoint rolled back; the outer transaction is still usable
            logger.warning(f"Unique constraint hit inserting user {wallet_address}")
            raise DuplicateKey(
                "Wallet address or referral code already exists",
                details={"wallet_address": wallet_address},
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert user {wallet_address}: {str(e)}")
            raise StorageError("Failed to insert user") from e

        return user

    async def insert_click(
        self,
        user_id: UUID,
        referral_code: str,
        ip: str,
        user_agent: str,
        referrer: str,
    ) -> ClickEvent:
        click_event = ClickEvent(
            id=uuid4(),
            user_id=user_id,
            referral_code=referral_code,
            ip=ip,
            user_agent=user_agent,
            referrer=referrer,
            created_at=datetime.now(timezone.utc),
        )

        try:
            self.db.add(click_event)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert click for {referral_code}: {str(e)}")
            raise StorageError("Failed to record click") from e

        return click_event

    async def count_clicks_by_user(self, user_id: UUID) -> int:
        try:
            return await self.db.scalar(
                select(func.count()).select_from(ClickEvent).where(
                    ClickEvent.user_id == user_id,
                )
            ) or 0
        except SQLAlchemyError as e:
            raise StorageError("Failed to count clicks") from e

    async def count_distinct_ip_by_user(self, user_id: UUID) -> int:
        try:
            return await self.db.scalar(
                select(func.count(func.distinct(ClickEvent.ip))).where(
                    ClickEvent.user_id == user_id,
                )
            ) or 0
        except SQLAlchemyError as e:
            raise StorageError("Failed to count unique clicks") from e

    async def clicks_per_day_by_user(self, user_id: UUID) -> list[tuple[str, int]]:
        """Per-UTC-day click counts, ascending, days without clicks omitted."""
        day = func.date(ClickEvent.created_at).label("day")
        try:
            result = await self.db.execute(
                select(day, func.count().label("c"))
                .where(ClickEvent.user_id == user_id)
                .group_by(day)
                .order_by(day)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            raise StorageError("Failed to aggregate clicks by day") from e

        return [(_day_key(row.day), row.c) for row in rows]

    async def list_users(self, offset: int = 0, limit: int = 25) -> list[User]:
        try:
            result = await self.db.execute(
                select(User).order_by(User.created_at.desc()).offset(offset).limit(limit)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StorageError("Failed to list users") from e

    async def count_users(self) -> int:
        try:
            return await self.db.scalar(select(func.count()).select_from(User)) or 0
        except SQLAlchemyError as e:
            raise StorageError("Failed to count users") from e
