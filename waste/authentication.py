"""
Session authentication for the API.

DRF's stock ``SessionAuthentication`` offers no ``WWW-Authenticate``
challenge, which makes DRF answer unauthenticated requests with 403.
This subclass supplies one so a missing or expired session is reported
as 401 and stays distinguishable from a 403 permission failure.  The
session itself is resolved per request by Django's session middleware
from whichever store ``SESSION_ENGINE`` selects.
"""
from __future__ import annotations

from rest_framework import authentication


class SessionAuthentication(authentication.SessionAuthentication):
    """Cookie session authentication answering 401 when no session is present."""

    challenge = 'Session'

    def authenticate_header(self, request) -> str:
        return self.challenge
