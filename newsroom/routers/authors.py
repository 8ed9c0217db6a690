from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsroom.database import get_db
from newsroom.schemas import AuthorCreate, AuthorResponse, AuthorUpdate
from newsroom.services import author_service

router = APIRouter(prefix="/api/v1/authors", tags=["authors"])


@router.get("", response_model=list[AuthorResponse])
async def list_authors(db: AsyncSession = Depends(get_db)):
    return await author_service.get_authors(db)


@router.get("/{author_id}", response_model=AuthorResponse)
async def get_author(author_id: int, db: AsyncSession = Depends(get_db)):
    return await author_service.get_author(db, author_id)


@router.post("", status_code=201, response_model=AuthorResponse)
async def create_author(data: AuthorCreate, db: AsyncSession = Depends(get_db)):
    return await author_service.create_author(db, data)


@router.put("/{author_id}", response_model=AuthorResponse)
async def update_author(author_id: int, data: AuthorUpdate, db: AsyncSession = Depends(get_db)):
    return await author_service.update_author(db, author_id, data)


@router.delete("/{author_id}", status_code=204)
async def delete_author(author_id: int, db: AsyncSession = Depends(get_db)):
    await author_service.delete_author(db, author_id)
