"""
FastAPI dependencies backed by the service graph on ``app.state``
"""

from typing import AsyncGenerator
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from core.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped database session"""
    services: Services = request.app.state.services
    async with services.database.session() as session:
        yield session
