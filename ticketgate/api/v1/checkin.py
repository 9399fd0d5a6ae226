from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ticketgate.core.checkin import CheckinStateMachine
from ticketgate.core.exceptions import StoreUnavailable
from ticketgate.core.schemas import VERIFICATION_MESSAGES, VerificationReason, VerificationResult

from .deps import get_checkin, require_operator
from .schemas import BookingResponse, VerifyRequest, VerifyResponse


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/checkin", tags=["checkin"])


def _to_response(result: VerificationResult) -> VerifyResponse:
    return VerifyResponse(
        valid=result.valid,
        reason=result.reason,
        message=result.message,
        data=BookingResponse.from_booking(result.data) if result.data is not None else None,
        scanned_at=result.scanned_at,
    )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": VerifyResponse}},
    dependencies=[Depends(require_operator)],
)
async def verify_booking(
    payload: VerifyRequest,
    checkin: CheckinStateMachine = Depends(get_checkin),
):
    """
    Verify a scanned ticket and check it in.

    Every outcome except a store failure is a 200 with the reason in the body,
    so operators can tell duplicate presentation from an unknown ticket.
    """
    try:
        result = await checkin.verify(payload.token)
    except StoreUnavailable as e:
        logger.warning("Verification of %r deferred: %s", payload.token, e)
        body = VerifyResponse(
            valid=False,
            reason=VerificationReason.STORE_UNAVAILABLE,
            message=VERIFICATION_MESSAGES[VerificationReason.STORE_UNAVAILABLE],
            retryable=True,
        )
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump(mode="json"))

    return _to_response(result)
