from threading import Lock
from typing import Callable, NamedTuple, Optional

from fastapi import Depends, Header, HTTPException
from loguru import logger

from webwave.core.config import Config, load_config
from webwave.domain.acquisition.youtube.download import fetch_audio
from webwave.domain.acquisition.youtube.models import AcquiredAudio
from webwave.domain.auth.models import UserSession
from webwave.domain.library.workflow import TrackWorkflow
from webwave.gateway.contracts import AuthGateway
from webwave.gateway.errors import GatewayError
from webwave.gateway.supabase import SupabaseGateway

AudioFetcher = Callable[..., AcquiredAudio]

_gateway: Optional[SupabaseGateway] = None
_gateway_lock = Lock()


class Caller(NamedTuple):
    """The authenticated user behind a request and the token they sent."""

    user: UserSession
    access_token: str


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


def get_gateway(config: Config = Depends(get_config)) -> SupabaseGateway:
    """FastAPI dependency for the shared Supabase gateway."""
    global _gateway
    with _gateway_lock:
        if _gateway is None:
            try:
                _gateway = SupabaseGateway.for_server(config.supabase)
            except GatewayError as e:
                logger.error(f"Supabase is not configured: {e}")
                raise HTTPException(status_code=500, detail="Server misconfigured") from e
        return _gateway


def get_auth(gateway: SupabaseGateway = Depends(get_gateway)) -> AuthGateway:
    return gateway.auth


def get_workflow(
    gateway: SupabaseGateway = Depends(get_gateway),
    config: Config = Depends(get_config),
) -> TrackWorkflow:
    return TrackWorkflow(gateway.storage, gateway.records, gateway.auth, config.limits)


def get_audio_fetcher() -> AudioFetcher:
    """FastAPI dependency for the YouTube acquisition function."""
    return fetch_audio


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_caller(
    authorization: Optional[str] = Header(default=None),
    auth: AuthGateway = Depends(get_auth),
) -> Caller:
    """Resolve the bearer token to a user, or fail with 401."""
    token = parse_bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = auth.get_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    return Caller(user=user, access_token=token)
