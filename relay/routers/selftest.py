"""Selftest endpoint: sends a fixed WhatsApp message to the operator address."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from relay.dependencies import get_relay_service
from relay.logging_config import get_logger
from relay.schemas.whatsapp import SelftestResponse
from relay.services.relay_service import RelayService

logger = get_logger("selftest")

router = APIRouter()


@router.api_route("/api/selftest", methods=["GET", "POST"], response_model=SelftestResponse)
async def selftest(service: RelayService = Depends(get_relay_service)):
    result = await service.send_selftest()
    if result.ok:
        return SelftestResponse(ok=True, sid=result.value.sid)

    logger.error(f"Selftest error: {result.error}")
    return JSONResponse(
        status_code=500,
        content=SelftestResponse(ok=False, error=result.error).model_dump(),
    )
