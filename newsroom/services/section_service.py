"""Section service: sections are managed by migrations and seed data, only listed here."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.models import Section


async def get_sections(db: AsyncSession) -> list[Section]:
    result = await db.execute(select(Section).order_by(Section.id))
    return list(result.scalars().all())
