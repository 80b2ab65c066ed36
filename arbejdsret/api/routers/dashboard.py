import logging

from fastapi import APIRouter, Depends

from arbejdsret.api.deps import get_gateway
from arbejdsret.models.domain import ActionCard, DashboardResponse, LegalNewsItem
from arbejdsret.services.errors import GatewayError
from arbejdsret.services.gemini import GeminiGateway

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

ACTION_CARDS = [
    ActionCard(
        view="TERMINATION",
        title="Generer Opsigelse",
        description="Opret juridisk gyldige opsigelsesbreve baseret på Funktionærloven. Inkluderer beregning af varsel.",
    ),
    ActionCard(
        view="ANALYZER",
        title="Analyser Overenskomst",
        description="Upload et billede af en kontraktklausul. Agenten udtrækker tekst og analyserer forpligtelser.",
    ),
    ActionCard(
        view="CHAT",
        title="Juridisk Chat",
        description="Stil spørgsmål om ferielov, barsel eller persondataforordningen (GDPR).",
    ),
]

# Shown when the live feed is unavailable
SIMULATED_NEWS = [
    LegalNewsItem(date="15. okt", title="Nye regler for registrering af arbejdstid", tag="EU Direktiv"),
    LegalNewsItem(date="01. okt", title="Opdatering af satser for kørselsfradrag", tag="Skat"),
    LegalNewsItem(
        date="28. sep",
        title="Præcisering af regler om 6. ferieuge i Industriens Overenskomst",
        tag="Overenskomst",
    ),
]


@router.get("", response_model=DashboardResponse)
async def get_dashboard(gateway: GeminiGateway = Depends(get_gateway)):
    """Agent cards plus the latest employment-law news."""
    try:
        news = await gateway.fetch_legal_news()
    except GatewayError as e:
        logging.warning(f"Legal news feed unavailable, using simulated feed: {e}")
        news = []

    if news:
        return DashboardResponse(cards=ACTION_CARDS, news=news, news_is_live=True)
    return DashboardResponse(cards=ACTION_CARDS, news=SIMULATED_NEWS, news_is_live=False)
