import uuid
from typing import List

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select

from backend.app import schemas
from backend.app.api_v1.auth import CurrentUserDep, DBDep
from backend.app.models import Category as CategoryModel
from backend.app.processing.ingestion import list_categories

router = APIRouter()


async def get_category_or_404(db: DBDep, category_id: uuid.UUID) -> CategoryModel:
    result = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


@router.get("", response_model=List[schemas.Category])
async def read_categories(db: DBDep, current_user: CurrentUserDep):
    return await list_categories(db)


@router.post("", response_model=schemas.Category, status_code=status.HTTP_201_CREATED)
async def create_category(category_in: schemas.CategoryCreate, db: DBDep, current_user: CurrentUserDep):
    category = CategoryModel(**category_in.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


@router.put("/{category_id}", response_model=schemas.Category)
async def update_category(
    category_id: uuid.UUID,
    category_in: schemas.CategoryUpdate,
    db: DBDep,
    current_user: CurrentUserDep,
):
    category = await get_category_or_404(db, category_id)
    for name, value in category_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(category, name, value)
    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: uuid.UUID, db: DBDep, current_user: CurrentUserDep):
    category = await get_category_or_404(db, category_id)
    await db.delete(category)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
