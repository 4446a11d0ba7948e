"""
Token handler - read access to minted carbon credit tokens.
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from bluecarbon.models.project import Project
from bluecarbon.models.token import CarbonToken


async def list_tokens(session: AsyncSession, owner_id: Optional[str] = None) -> List[CarbonToken]:
    """List minted tokens, newest first, optionally only those of one project owner."""
    statement = select(CarbonToken)
    if owner_id is not None:
        statement = statement.join(Project, CarbonToken.project_id == Project.id).where(
            Project.owner_id == owner_id
        )
    statement = statement.order_by(CarbonToken.created_at.desc(), CarbonToken.id.desc())

    result = await session.execute(statement)
    return list(result.scalars().all())
