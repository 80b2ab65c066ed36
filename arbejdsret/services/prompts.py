"""System instructions, prompt builders and response schemas for Gemini."""

from __future__ import annotations

from arbejdsret.models.domain import DEFAULT_TOPIC, TerminationRequest, Topic

SYSTEM_INSTRUCTION_BASE = """
Du er "Arbejdsret-Eksperten", en avanceret AI-agent specialiseret i dansk arbejdsret.
Din viden omfatter Funktionærloven, Ferieloven, GDPR og standard overenskomster.

Dine svar skal være:
1. Juridisk korrekte i henhold til gældende dansk lovgivning.
2. Formuleret i et professionelt, formelt dansk sprog.
3. Konservative i vurderinger (advar brugeren hvis en opsigelse virker usaglig).

Når du genererer dokumenter, skal du følge standard dansk forretningsformat.
"""

SEARCH_INSTRUCTION = (
    "Du har adgang til Google Search. BRUG DETTE VÆRKTØJ aktivt til at finde opdaterede "
    "lovtekster, satser (f.eks. godtgørelser) og nyere domstolsafgørelser, når det er relevant "
    "for brugerens spørgsmål. Sørg for at svaret er baseret på gældende dansk ret."
)

NEWS_SYSTEM_INSTRUCTION = (
    "Du er en nyhedsagent. Find faktiske, nylige lovændringer eller juridiske nyheder i Danmark."
)

NEWS_PROMPT = (
    "Find de seneste 3 vigtige nyheder eller ændringer inden for dansk arbejdsret, ferieloven, "
    "GDPR eller overenskomster fra de sidste 6 måneder. Returner dem som JSON."
)

DOCUMENT_ANALYSIS_INSTRUCTION = (
    "Analyser dette dokument (som kan være en kontrakt, overenskomst eller klausul). "
    "1) Identificer dokumentets type. 2) Resumer hovedpunkterne. "
    "3) Forklar på almindeligt dansk, hvad indholdet betyder for arbejdsgiver og medarbejder. "
    "4) Fremhæv eventuelle juridiske risici eller usædvanlige vilkår."
)

# Schema for the structured termination response
TERMINATION_SCHEMA = {
    "type": "object",
    "properties": {
        "isValidReason": {
            "type": "boolean",
            "description": "Whether the provided reason is legally valid for termination.",
        },
        "calculatedNoticePeriod": {
            "type": "string",
            "description": "The calculated notice period (e.g. '3 måneder') based on hire date.",
        },
        "lastWorkingDay": {"type": "string", "description": "The specific date for the last working day."},
        "legalReference": {"type": "string", "description": "Reference to specific paragraphs in Funktionærloven."},
        "letterContent": {"type": "string", "description": "The full text of the termination letter in Markdown format."},
        "explanation": {"type": "string", "description": "A brief explanation of the calculation and advice."},
    },
    "required": [
        "isValidReason",
        "calculatedNoticePeriod",
        "lastWorkingDay",
        "legalReference",
        "letterContent",
        "explanation",
    ],
}

NEWS_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "date": {"type": "string", "description": "Date of the news/event (e.g. '15. okt')"},
            "title": {"type": "string", "description": "Headline of the legal update"},
            "tag": {"type": "string", "description": "Category: 'Lovgivning', 'Domstol', 'Overenskomst', 'EU' etc."},
            "summary": {"type": "string", "description": "Very short summary (max 10 words)"},
        },
        "required": ["date", "title", "tag"],
    },
}


def termination_prompt(request: TerminationRequest) -> str:
    employee = request.employee
    return f"""
Generer en opsigelsespakke for følgende medarbejder:
Navn: {employee.name}
Titel: {employee.title}
Adresse: {employee.address}
Ansat dato: {employee.hire_date}
Er funktionær: {'Ja' if employee.is_funktionaer else 'Nej'}

Dato for opsigelse (dags dato): {request.termination_date}
Årsag: {request.reason}
Noter: {request.notes or 'Ingen'}

Opgave:
1. Beregn det korrekte opsigelsesvarsel iht. Funktionærloven baseret på anciennitet.
2. Beregn fratrædelsesdatoen (typisk udgangen af en måned).
3. Vurder om årsagen er saglig.
4. Skriv selve opsigelsesbrevet. Det skal være venligt men formelt.
"""


def document_text_prompt(content: str) -> str:
    return f"Her er indholdet af et juridisk dokument:\n\n{content}"


def chat_system_instruction(topic: Topic | str | None) -> str:
    instruction = f"{SYSTEM_INSTRUCTION_BASE}\n\n{SEARCH_INSTRUCTION}"
    if topic and Topic(topic) is not DEFAULT_TOPIC:
        name = Topic(topic).value
        instruction += (
            f"\n\nBRUGERENS VALGTE EMNE: {name}.\n"
            f'Du skal nu fokusere din rådgivning specifikt på love, regler og præcedens inden for "{name}". '
            "Ignorer regler der ikke er relevante for dette emne, medmindre de er nødvendige for konteksten."
        )
    return instruction
