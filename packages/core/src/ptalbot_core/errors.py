"""Exception hierarchy for the reconciliation pipeline.

The webhook endpoint maps AuthenticationError and DecodeError to HTTP
status codes. UpstreamApiError never reaches a webhook sender: it is caught
per record and logged, since the response has already been sent by then.
"""

from __future__ import annotations


class PtalBotError(Exception):
    """Base class for every error raised by ptalbot_core."""


class AuthenticationError(PtalBotError):
    """Webhook signature is missing, malformed or does not match the body."""


class DecodeError(PtalBotError):
    """A webhook body or client payload could not be decoded."""


class UpstreamApiError(PtalBotError):
    """A GitHub or chat API call failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service
