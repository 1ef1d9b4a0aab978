"""
Connector API routes — login redirect, callback, refresh.

Route prefix: /api/v1/connectors

These routes expose the connector contract over HTTP for an authorization
server running out of process.  Connector errors are turned into responses
by the handlers in ``api.middleware``.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from connectors.base import BaseConnector
from connectors.registry import ConnectorRegistry
from utils.schemas import Identity, Scopes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["connectors"])


class RefreshRequest(BaseModel):
    scopes: Scopes = Field(default_factory=Scopes)
    identity: Identity


def _get_connector(provider: str) -> BaseConnector:
    connector = ConnectorRegistry().get(provider)
    if not connector:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Provider '{provider}' not found or not configured",
        )
    return connector


@router.get("/providers")
async def list_providers() -> List[Dict[str, str]]:
    """List the configured connector providers."""
    return ConnectorRegistry().list_providers()


@router.get("/{provider}/login")
async def login(
    provider: str,
    callback_url: str = Query(...),
    state: str = Query(...),
    scope: Optional[str] = Query(None),
) -> RedirectResponse:
    """Redirect the browser to the provider's consent page."""
    connector = _get_connector(provider)
    url = connector.login_url(Scopes.from_scope_string(scope), callback_url, state)
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get("/{provider}/callback", response_model=Identity)
async def callback(
    provider: str,
    request: Request,
    scope: Optional[str] = Query(None),
) -> Identity:
    """
    OAuth callback — the provider redirects here after consent.

    ``state`` is passed back untouched for the caller to verify; the
    connector only looks at ``code`` / ``error``.
    """
    connector = _get_connector(provider)
    identity = await connector.handle_callback(Scopes.from_scope_string(scope), request.query_params)
    logger.info("Callback resolved: provider=%s user_id=%s", provider, identity.user_id)
    return identity


@router.post("/{provider}/refresh", response_model=Identity)
async def refresh(provider: str, body: RefreshRequest) -> Identity:
    """Re-resolve a previously returned identity."""
    connector = _get_connector(provider)
    return await connector.refresh(body.scopes, body.identity)
