"""
Scheduled-job triggers for an external scheduler.

Each trigger runs one lifecycle job and answers 204 with no body.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Header, status, Response
from fastapi.responses import JSONResponse
from cardledger.core.exceptions import Unauthorized
from cardledger.core.security import verify_cron_token
from cardledger.services import scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cron"])


async def _trigger(name: str, token: Optional[str]) -> Response:
    try:
        verify_cron_token(token)
    except Unauthorized as e:
        logger.warning(f"Rejected cron trigger {name}: {e}")
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"success": False, "message": str(e)})

    try:
        await scheduler.run_job(name)
    except Exception:
        # run_job already logged the traceback
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Cron handler failed"}
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/renewal-reminders", status_code=status.HTTP_204_NO_CONTENT)
async def renewal_reminders(x_cron_token: Optional[str] = Header(None, alias="x-cron-token")):
    return await _trigger(scheduler.RENEWAL_REMINDERS, x_cron_token)


@router.post("/auto-cancel", status_code=status.HTTP_204_NO_CONTENT)
async def auto_cancel(x_cron_token: Optional[str] = Header(None, alias="x-cron-token")):
    return await _trigger(scheduler.AUTO_CANCEL, x_cron_token)


@router.post("/renewal-flag-reset", status_code=status.HTTP_204_NO_CONTENT)
async def renewal_flag_reset(x_cron_token: Optional[str] = Header(None, alias="x-cron-token")):
    return await _trigger(scheduler.RENEWAL_FLAG_RESET, x_cron_token)


@router.post("/exchange-refresh", status_code=status.HTTP_204_NO_CONTENT)
async def exchange_refresh(x_cron_token: Optional[str] = Header(None, alias="x-cron-token")):
    return await _trigger(scheduler.EXCHANGE_REFRESH, x_cron_token)


@router.post("/rejected-cleanup", status_code=status.HTTP_204_NO_CONTENT)
async def rejected_cleanup(x_cron_token: Optional[str] = Header(None, alias="x-cron-token")):
    return await _trigger(scheduler.REJECTED_CLEANUP, x_cron_token)
