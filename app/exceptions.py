"""Domain exceptions for referral issuance and click attribution."""

from typing import Any

from fastapi import status


class ReferralError(Exception):
    """Base exception for referral operations."""

    code = "REFERRAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(ReferralError):
    """Required signup fields are missing or blank."""

    code = "INVALID_INPUT"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidCode(ReferralError):
    """Referral code does not belong to any user."""

    code = "INVALID_CODE"
    status_code = status.HTTP_404_NOT_FOUND


class DuplicateKey(ReferralError):
    """Unique constraint violation on wallet address or referral code."""

    code = "DUPLICATE_KEY"


class StorageError(ReferralError):
    """Store unreachable or query failure."""

    code = "STORAGE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
