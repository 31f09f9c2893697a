from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from codenest.auth.auth_utils import verify_token
from codenest.execution.piston import PistonClient


@dataclass
class CurrentUser:
    user_id: str
    username: Optional[str] = None

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.db

async def get_executor(request: Request) -> PistonClient:
    """Shared sandbox client, created at startup"""
    return request.app.state.executor

async def get_current_user(payload: dict = Depends(verify_token)) -> CurrentUser:
    """
    Extract the user from the verified token.
    `sub` is the user id; `username` is optional display name.
    """
    return CurrentUser(user_id=payload["sub"], username=payload.get("username"))
