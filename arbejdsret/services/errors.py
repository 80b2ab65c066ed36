"""Error taxonomy for the Gemini gateway and the session store.

Every gateway error carries ``user_message``: the Danish text the views show
to the HR user. ``str(exc)`` is the developer-facing description.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for failures of a call to the generative model."""

    user_message = "Der opstod en fejl. Prøv igen."

    def __init__(self, message: str | None = None, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class MissingCredentialError(GatewayError):
    """No API key configured; raised before any network traffic."""

    user_message = "API nøgle mangler. Tjek venligst dine indstillinger."


class TransportError(GatewayError):
    """Network or HTTP-level failure reported by the SDK."""

    user_message = (
        "Beklager, der opstod en teknisk fejl. "
        "Kontroller venligst din internetforbindelse eller API nøgle."
    )


class EmptyResponseError(GatewayError):
    """The model returned no text where structured output was mandatory."""

    user_message = "Intet svar modtaget fra AI."


class MalformedResponseError(GatewayError):
    """The model's JSON did not match the expected schema."""

    user_message = "AI-svaret havde et uventet format. Prøv igen."


class SessionNotFound(KeyError):
    """Unknown chat session id."""


class UnsupportedDocumentError(ValueError):
    """The uploaded file type cannot be analysed."""
