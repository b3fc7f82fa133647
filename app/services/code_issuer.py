"""Referral code issuance for affiliate signups."""

import logging

from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from app.config import ReferralConfig
from app.exceptions import DuplicateKey, InvalidInput, StorageError
from app.models.user import User
from app.services.store import ReferralStore
from app.utils.links import build_referral_link, generate_referral_code

logger = logging.getLogger(__name__)


class CodeIssuer:
    """Creates affiliate users with globally unique referral codes."""

    def __init__(self, store: ReferralStore, config: ReferralConfig):
        self.store = store
        self.config = config

    async def sign_up(self, name: str | None, wallet_address: str | None) -> User:
        """
        Return the user for ``wallet_address``, creating it on first signup.

        Idempotent per wallet: an existing user is returned unchanged and no
        new code is generated.

        Raises:
            InvalidInput: name or wallet address blank after trimming
            StorageError: store failure or code generation exhausted
        """
        user, _ = await self.issue(name, wallet_address)
        return user

    async def issue(self, name: str | None, wallet_address: str | None) -> tuple[User, bool]:
        """
        Same as ``sign_up`` but also reports whether a new user was created.

        Returns:
            Tuple of (user, created)
        """
        name = (name or "").strip()
        wallet_address = (wallet_address or "").strip()
        if not name or not wallet_address:
            raise InvalidInput(
                "name and walletAddress are required",
                details={"fields": ["name", "walletAddress"]},
            )

        existing = await self.store.find_user_by_wallet(wallet_address)
        if existing:
            logger.debug(f"Wallet already registered: {wallet_address}")
            return existing, False

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(DuplicateKey),
                stop=stop_after_attempt(self.config.code_max_attempts),
            ):
                with attempt:
                    user, created = await self._create_user(name, wallet_address)
        except RetryError as e:
            logger.error(
                f"Could not allocate a unique referral code for {wallet_address} "
                f"after {self.config.code_max_attempts} attempts"
            )
            raise StorageError(
                "Could not allocate a unique referral code",
                details={"attempts": self.config.code_max_attempts},
            ) from e

        return user, created

    async def _create_user(self, name: str, wallet_address: str) -> tuple[User, bool]:
        """
        One generation attempt. Raises DuplicateKey to request a fresh draw.

        The store's unique indexes are authoritative; the pre-check only
        avoids a round trip through a failed insert.
        """
        code = generate_referral_code(self.config.code_length, self.config.code_alphabet)
        if await self.store.find_user_by_code(code):
            logger.info(f"Referral code collision on pre-check: {code}")
            raise DuplicateKey("Referral code already in use", details={"code": code})

        link = build_referral_link(self.config, code)
        try:
            user = await self.store.insert_user(
                name=name,
                wallet_address=wallet_address,
                referral_code=code,
                referral_link=link,
            )
        except DuplicateKey:
            # Either a concurrent signup took the wallet, or the code was taken
            existing = await self.store.find_user_by_wallet(wallet_address)
            if existing:
                logger.info(f"Concurrent signup for {wallet_address}; returning existing user")
                return existing, False
            logger.info(f"Referral code collision on insert: {code}")
            raise

        logger.info(f"Created affiliate {wallet_address} with code {code}")
        return user, True
