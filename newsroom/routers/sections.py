from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.schemas import SectionResponse
from newsroom.services import section_service

router = APIRouter(prefix="/api/v1/sections", tags=["sections"])


@router.get("", response_model=list[SectionResponse])
async def list_sections(db: AsyncSession = Depends(get_db)):
    return await section_service.get_sections(db)
