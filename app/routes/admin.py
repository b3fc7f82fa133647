"""Admin listing of affiliates."""

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_store
from app.schemas.referral import UserListResponse, UserOut
from app.services.store import SQLAlchemyReferralStore

router = APIRouter()


@router.get("/admin/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(25, ge=1, le=100, description="Items per page (max 100)"),
    store: SQLAlchemyReferralStore = Depends(get_store),
) -> UserListResponse:
    """
    List affiliates, newest first.

    **Query Parameters:**
    - `page`: Page number (1-indexed, default: 1)
    - `page_size`: Items per page (1-100, default: 25)
    """
    total = await store.count_users()
    users = await store.list_users(offset=(page - 1) * page_size, limit=page_size)

    return UserListResponse.create(
        items=[UserOut.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=page_size,
    )
