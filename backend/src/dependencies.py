# backend/src/dependencies.py
"""
FastAPI dependencies: components built at startup, admin check
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from shared.config import Config
from .database import get_db
from .services.cache import CacheService
from .services.discovery import DiscoveryService
from .services.metadata_cache import MetadataCache

get_db_session = get_db


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_discovery(request: Request) -> DiscoveryService:
    return request.app.state.discovery


def get_metadata_cache(request: Request) -> MetadataCache:
    return request.app.state.metadata_cache


def get_cache(request: Request) -> CacheService:
    return request.app.state.cache


async def verify_admin(
    x_admin_token: Optional[str] = Header(None),
    config: Config = Depends(get_config),
) -> None:
    """Moderation endpoints are closed unless ADMIN_TOKEN is set and matches"""
    if not config.ADMIN_TOKEN or not x_admin_token:
        raise HTTPException(status_code=403, detail="Moderation is not available")
    if not secrets.compare_digest(x_admin_token, config.ADMIN_TOKEN):
        raise HTTPException(status_code=403, detail="Invalid admin token")
