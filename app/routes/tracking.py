"""Redirect hop that records referral clicks (``/r/<code>`` links)."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse

from app.dependencies import get_click_recorder
from app.exceptions import InvalidCode
from app.services.click_recorder import ClickRecorder
from app.utils.request_meta import extract_click_metadata

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/r/{code}", response_model=None)
async def follow_referral_link(
    code: str,
    request: Request,
    recorder: ClickRecorder = Depends(get_click_recorder),
) -> Response:
    """
    Record a referral click and redirect to the frontend signup page.

    This endpoint:
    1. Resolves the referral code to its affiliate
    2. Records the click with IP, user agent and referrer
    3. Redirects to `<FRONTEND_ORIGIN><FRONTEND_SIGNUP_PATH>?ref=<code>` (302)

    **Unknown codes** (`UNKNOWN_CODE_POLICY`):
    - `reject`: 404, nothing recorded
    - `redirect`: 302 to the signup page without `ref`, nothing recorded

    **Fallback:**
    - Any unexpected failure redirects to the signup page without `ref`

    **Example:**
    ```
    GET /r/k3j9x0a2b
    → Records click and redirects to https://app.example.com/signup?ref=k3j9x0a2b
    ```
    """
    try:
        meta = extract_click_metadata(request)
        await recorder.record_click(
            code,
            ip=meta.ip,
            user_agent=meta.user_agent,
            referrer=meta.referrer,
        )
        return RedirectResponse(
            url=recorder.redirect_target(code),
            status_code=status.HTTP_302_FOUND,
        )

    except InvalidCode:
        if recorder.rejects_unknown_codes:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return RedirectResponse(
            url=recorder.redirect_target(),
            status_code=status.HTTP_302_FOUND,
        )

    except Exception as e:
        logger.error(f"Click tracking failed for {code}: {str(e)}")
        return RedirectResponse(
            url=recorder.redirect_target(),
            status_code=status.HTTP_302_FOUND,
        )
