import logging

from fastapi import APIRouter, Depends, HTTPException

from arbejdsret.api.deps import gateway_http_error, get_gateway
from arbejdsret.models.domain import TerminationRequest, TerminationResponse
from arbejdsret.services.errors import GatewayError
from arbejdsret.services.gemini import GeminiGateway

router = APIRouter(prefix="/termination", tags=["termination"])

GENERIC_ERROR = "Der opstod en fejl under genereringen."


@router.post("", response_model=TerminationResponse)
async def generate_termination_package(
    body: TerminationRequest,
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Termination wizard: returns notice period, last working day and the letter."""
    try:
        return await gateway.generate_termination_package(body)
    except GatewayError as e:
        logging.error(f"Termination package generation failed: {e}")
        raise gateway_http_error(e)
    except Exception as e:
        logging.error(f"Unexpected error generating termination package: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=GENERIC_ERROR)
