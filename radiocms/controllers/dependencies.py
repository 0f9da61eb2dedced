"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from radiocms.domain.models import Actor
from radiocms.pipelines.publish import PublishOrchestrator
from radiocms.services import BroadcastConfigRepository, SecretStoreProvider
from radiocms.utils import AuthenticationError, decode_access_token

logger = logging.getLogger(__name__)

# Tokens are issued by the external auth service; this backend only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_optional_actor(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
) -> Optional[Actor]:
    """Return the verified actor, or ``None`` for missing/invalid tokens."""

    if not token:
        return None
    try:
        return decode_access_token(token).to_actor()
    except AuthenticationError:
        logger.debug("Rejected bearer token", exc_info=True)
        return None


async def get_current_actor(
    actor: Annotated[Optional[Actor], Depends(get_optional_actor)],
) -> Actor:
    """Require a verified actor."""

    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized",
        )
    return actor


def get_publish_orchestrator(request: Request) -> PublishOrchestrator:
    return request.app.state.publish_orchestrator


def get_secret_provider(request: Request) -> SecretStoreProvider:
    return request.app.state.secret_provider


def get_broadcast_config_repository(request: Request) -> BroadcastConfigRepository:
    return request.app.state.broadcast_config_repository


OptionalActorDep = Annotated[Optional[Actor], Depends(get_optional_actor)]
CurrentActorDep = Annotated[Actor, Depends(get_current_actor)]
PublishOrchestratorDep = Annotated[PublishOrchestrator, Depends(get_publish_orchestrator)]
SecretProviderDep = Annotated[SecretStoreProvider, Depends(get_secret_provider)]
BroadcastConfigRepositoryDep = Annotated[
    BroadcastConfigRepository, Depends(get_broadcast_config_repository)
]


__all__ = [
    "get_optional_actor",
    "get_current_actor",
    "get_publish_orchestrator",
    "get_secret_provider",
    "get_broadcast_config_repository",
    "oauth2_scheme",
    "OptionalActorDep",
    "CurrentActorDep",
    "PublishOrchestratorDep",
    "SecretProviderDep",
    "BroadcastConfigRepositoryDep",
]
