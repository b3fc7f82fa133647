"""Shared FastAPI dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import ReferralConfig, settings
from app.database import get_session
from app.services.click_recorder import ClickRecorder
from app.services.code_issuer import CodeIssuer
from app.services.store import SQLAlchemyReferralStore


def get_referral_config() -> ReferralConfig:
    """Referral configuration derived from the current settings."""
    return ReferralConfig.from_settings(settings)


def get_store(db: AsyncSession = Depends(get_session)) -> SQLAlchemyReferralStore:
    """Referral store bound to the request's database session."""
    return SQLAlchemyReferralStore(db)


def get_code_issuer(
    store: SQLAlchemyReferralStore = Depends(get_store),
    config: ReferralConfig = Depends(get_referral_config),
) -> CodeIssuer:
    return CodeIssuer(store, config)


def get_click_recorder(
    store: SQLAlchemyReferralStore = Depends(get_store),
    config: ReferralConfig = Depends(get_referral_config),
) -> ClickRecorder:
    return ClickRecorder(store, config)
