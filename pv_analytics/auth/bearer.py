"""
Client authentication for the /v1 routes.

Each API consumer (dashboard, reporting job, telemetry forwarder) gets its own
token through the API_TOKENS setting. A request is accepted when its bearer
token matches one of them, and the matching client name is what the ingest
route writes into its audit log line.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-101)

TODO:
- None
"""

import logging
import secrets

from fastapi import HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

_UNAUTHORIZED_HEADERS = {"WWW-Authenticate": "Bearer"}


def parse_api_tokens(raw: str) -> dict[str, str]:
    """Turn ``"tok1:dashboard,tok2:reporting"`` into ``{token: client}``.

    Only the first colon separates token from client, so client names may
    contain colons. Pairs with an empty side are dropped; pairs without a
    colon are dropped with a warning naming their position.
    """
    token_map: dict[str, str] = {}
    if not raw or not raw.strip():
        return token_map

    for position, pair in enumerate(raw.split(",")):
        token, sep, client = pair.strip().partition(":")
        if not sep:
            logger.warning(
                "Ignoring API_TOKENS entry %d: expected token:client", position
            )
            continue
        token, client = token.strip(), client.strip()
        if token and client:
            token_map[token] = client
    return token_map


def verify_bearer_token(token: str, token_map: dict[str, str]) -> str | None:
    """Look up the client owning ``token``.

    The loop never exits early, so response time says nothing about how
    close a guess was.
    """
    if not token:
        return None

    owner: str | None = None
    presented = token.encode("utf-8")
    for known, client in token_map.items():
        if secrets.compare_digest(presented, known.encode("utf-8")):
            owner = client
    return owner


class BearerAuth:
    """Request guard built once at startup from the parsed API_TOKENS.

    Attributes:
        token_map: Token to client name.
        scheme: HTTPBearer extractor; also documents the scheme in OpenAPI.
    """

    def __init__(self, token_map: dict[str, str]) -> None:
        self.token_map = token_map
        self.scheme = HTTPBearer(auto_error=False)

    async def verify(self, request: Request) -> str:
        """Return the calling client's name.

        Raises:
            HTTPException: 401 when no bearer token is sent or it is unknown.
        """
        credentials: HTTPAuthorizationCredentials | None = await self.scheme(request)
        if credentials is None:
            raise HTTPException(
                status_code=401,
                detail="Missing authorization credentials.",
                headers=_UNAUTHORIZED_HEADERS,
            )

        client = verify_bearer_token(credentials.credentials, self.token_map)
        if client is None:
            raise HTTPException(
                status_code=401,
                detail="Invalid or expired token.",
                headers=_UNAUTHORIZED_HEADERS,
            )
        return client
