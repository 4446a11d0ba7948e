"""
Token endpoints: the carbon credit tokens issued for projects.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from bluecarbon.core.database import get_session
from bluecarbon.handlers.identity import CallerIdentity
from bluecarbon.handlers.tokens import list_tokens
from bluecarbon.models.token import CarbonTokenRead
from bluecarbon.routes.deps import get_current_user

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.get("/", response_model=List[CarbonTokenRead])
async def list_tokens_endpoint(
    session: AsyncSession = Depends(get_session),
    caller: CallerIdentity = Depends(get_current_user)
):
    """
    List minted tokens, newest first.

    Administrators see every token; other users only those of their own projects.
    """
    owner_id = None if caller.is_admin else caller.user_id
    return await list_tokens(session, owner_id=owner_id)
