import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from arbejdsret.api.deps import gateway_http_error, get_gateway
from arbejdsret.models.domain import AnalyzeRequest, AnalyzeResponse
from arbejdsret.services.documents import DocumentContent, from_payload, read_upload
from arbejdsret.services.errors import GatewayError, UnsupportedDocumentError
from arbejdsret.services.gemini import GeminiGateway

router = APIRouter(prefix="/analyzer", tags=["analyzer"])

ANALYSIS_ERROR = "Der opstod en fejl under analysen. Prøv igen."


async def _analyze(document: DocumentContent, gateway: GeminiGateway) -> AnalyzeResponse:
    try:
        analysis = await gateway.analyze_legal_document(document)
    except GatewayError as e:
        logging.error(f"Analysis of '{document.filename}' failed: {e}")
        raise gateway_http_error(e, detail=ANALYSIS_ERROR)
    except Exception as e:
        logging.error(f"Unexpected error analysing '{document.filename}': {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=ANALYSIS_ERROR)
    return AnalyzeResponse(
        analysis=analysis,
        kind=document.kind.value,
        mime_type=document.mime_type,
        filename=document.filename,
        preview=document.preview(),
    )


@router.post("/upload", response_model=AnalyzeResponse)
async def analyze_upload(
    file: UploadFile = File(..., description="Contract, agreement or clause (txt, md, image, pdf)"),
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Analyses an uploaded document."""
    raw = await file.read()
    try:
        document = read_upload(file.filename, file.content_type, raw)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e))
    return await _analyze(document, gateway)


@router.post("", response_model=AnalyzeResponse)
async def analyze_payload(
    body: AnalyzeRequest,
    gateway: GeminiGateway = Depends(get_gateway),
):
    """Analyses raw text, base64 content or a data URL sent as JSON."""
    try:
        document = from_payload(body.data, body.mime_type, body.filename)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(e))
    return await _analyze(document, gateway)
