"""Affiliate signup, click reporting and stats API routes."""

import logging

from fastapi import APIRouter, Depends, Request

from app.dependencies import get_click_recorder, get_code_issuer
from app.schemas.referral import (
    CodeStatsResponse,
    SignupRequest,
    SignupResponse,
    TrackClickRequest,
    TrackClickResponse,
    UserOut,
    UserStatsResponse,
)
from app.services.click_recorder import ClickRecorder
from app.services.code_issuer import CodeIssuer
from app.utils.request_meta import extract_click_metadata

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=SignupResponse)
async def signup(
    request: SignupRequest,
    issuer: CodeIssuer = Depends(get_code_issuer),
) -> SignupResponse:
    """
    Register an affiliate and return their referral code and link.

    Idempotent per wallet address: signing up again with the same wallet
    returns the existing record unchanged.

    **Request Body:**
    ```json
    {"name": "Alice", "walletAddress": "0xABC"}
    ```

    **Error Codes:**
    - `INVALID_INPUT` (400): name or walletAddress missing or blank
    - `STORAGE_ERROR` (500): database failure
    """
    user, created = await issuer.issue(request.name, request.wallet_address)

    return SignupResponse(
        success=True,
        message="Affiliate created" if created else "Wallet already registered",
        user=UserOut.model_validate(user),
    )


@router.get("/user/{wallet_address}", response_model=UserStatsResponse)
async def get_user_stats(
    wallet_address: str,
    recorder: ClickRecorder = Depends(get_click_recorder),
) -> UserStatsResponse:
    """
    Get an affiliate and their click stats by wallet address.

    Never returns 404: unknown wallets get `found: false`, `user: null`
    and zeroed stats, so dashboards can poll unconditionally.

    **Stats:**
    - `totalClicks`: all recorded clicks
    - `uniqueClicks`: distinct originating IPs
    - `clicksByDay`: `[{"day": "YYYY-MM-DD", "c": n}]`, UTC days, ascending
    """
    result = await recorder.get_stats(wallet_address)

    return UserStatsResponse(
        success=True,
        found=result.found,
        message="OK" if result.found else "User not found",
        user=result.user,
        stats=result.stats,
    )


@router.get("/stats/{code}", response_model=CodeStatsResponse)
async def get_code_stats(
    code: str,
    recorder: ClickRecorder = Depends(get_click_recorder),
) -> CodeStatsResponse:
    """
    Get click totals for a referral code.

    **Error Codes:**
    - `INVALID_CODE` (404): no affiliate owns this code
    """
    result = await recorder.get_code_stats(code)

    return CodeStatsResponse(
        success=True,
        referral_code=result.referral_code,
        name=result.name,
        wallet_address=result.wallet_address,
        stats=result.stats,
    )


@router.post("/track", response_model=TrackClickResponse)
async def track_click(
    payload: TrackClickRequest,
    request: Request,
    recorder: ClickRecorder = Depends(get_click_recorder),
) -> TrackClickResponse:
    """
    Record a click reported by the frontend (`?ref=<code>` links).

    **Error Codes:**
    - `INVALID_CODE` (404): no affiliate owns this code; nothing recorded
    """
    meta = extract_click_metadata(request)
    code = payload.code.strip()
    await recorder.record_click(
        code,
        ip=meta.ip,
        user_agent=meta.user_agent,
        referrer=meta.referrer,
    )

    return TrackClickResponse(success=True, referral_code=code)
