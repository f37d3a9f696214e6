"""Menu routes: public browsing and admin management of categories and items."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.database import get_db
from app.dependencies import require_roles
from app.models import Addon, Category, MenuItem, OrderItem, PriceVariant, Role, User
from app.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    CategoryWithItemsResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
)
from app.services.audit import record_audit

router = APIRouter(prefix="/api/menu", tags=["Menu"])
logger = logging.getLogger(__name__)

admin_only = require_roles(Role.ADMIN)


async def _get_category(db: AsyncSession, category_id: str) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def _get_item(db: AsyncSession, item_id: str) -> MenuItem:
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError("Menu item not found")
    return item


# =============================================================================
# PUBLIC
# =============================================================================

@router.get(
    "/categories",
    response_model=List[CategoryWithItemsResponse],
    summary="Active categories with their available items",
)
async def list_categories(db: AsyncSession = Depends(get_db)) -> List[CategoryWithItemsResponse]:
    result = await db.execute(
        select(Category)
        .where(Category.is_active.is_(True))
        .options(selectinload(Category.items))
        .order_by(Category.display_order, Category.name)
    )
    categories = result.scalars().all()

    response = []
    for category in categories:
        data = CategoryWithItemsResponse.model_validate(category)
        data.items = [item for item in data.items if item.is_available]
        response.append(data)
    return response


@router.get("/items", response_model=List[MenuItemResponse])
async def list_items(
    category_id: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[MenuItemResponse]:
    query = select(MenuItem).order_by(MenuItem.display_order, MenuItem.name)
    if category_id:
        query = query.where(MenuItem.category_id == category_id)
    if available is not None:
        query = query.where(MenuItem.is_available.is_(available))

    result = await db.execute(query)
    return [MenuItemResponse.model_validate(item) for item in result.scalars().all()]


@router.get("/items/{item_id}", response_model=MenuItemResponse)
async def get_item(item_id: str, db: AsyncSession = Depends(get_db)) -> MenuItemResponse:
    return MenuItemResponse.model_validate(await _get_item(db, item_id))


# =============================================================================
# ADMIN: CATEGORIES
# =============================================================================

@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    payload: CategoryCreate,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = Category(**payload.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info(f"Category created: {category.name}")
    return CategoryResponse.model_validate(category)


@router.put("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = await _get_category(db, category_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    await db.commit()
    await db.refresh(category)
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    category = await _get_category(db, category_id)

    item_count = (
        await db.execute(select(func.count(MenuItem.id)).where(MenuItem.category_id == category_id))
    ).scalar() or 0
    if item_count:
        raise ValidationError(
            f"Cannot delete category with {item_count} menu item(s). Move or delete them first."
        )

    await db.delete(category)
    await db.commit()
    return MessageResponse(message="Category deleted successfully")


# =============================================================================
# ADMIN: ITEMS
# =============================================================================

@router.post(
    "/items",
    response_model=MenuItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_item(
    payload: MenuItemCreate,
    request: Request,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    if await db.get(Category, payload.category_id) is None:
        raise ValidationError("Category not found")

    data = payload.model_dump(exclude={"variants", "addons"})
    item = MenuItem(
        **data,
        variants=[PriceVariant(**v.model_dump()) for v in payload.variants],
        addons=[Addon(**a.model_dump()) for a in payload.addons],
    )
    db.add(item)
    await db.commit()

    item = await _get_item(db, item.id)
    await record_audit(
        db, admin.id, "CREATE_MENU_ITEM", "MenuItem", item.id,
        details={"name": item.name}, request=request,
    )
    return MenuItemResponse.model_validate(item)


@router.put("/items/{item_id}", response_model=MenuItemResponse)
async def update_item(
    item_id: str,
    payload: MenuItemUpdate,
    request: Request,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    item = await _get_item(db, item_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"variants", "addons"})

    if "category_id" in changes and await db.get(Category, changes["category_id"]) is None:
        raise ValidationError("Category not found")

    for key, value in changes.items():
        setattr(item, key, value)

    # Lists replace the existing ones wholesale
    if payload.variants is not None:
        item.variants = [PriceVariant(**v.model_dump()) for v in payload.variants]
    if payload.addons is not None:
        item.addons = [Addon(**a.model_dump()) for a in payload.addons]

    await db.commit()
    item = await _get_item(db, item_id)
    await record_audit(
        db, admin.id, "UPDATE_MENU_ITEM", "MenuItem", item.id,
        details={"fields": list(payload.model_dump(exclude_unset=True))}, request=request,
    )
    return MenuItemResponse.model_validate(item)


@router.delete("/items/{item_id}", response_model=MessageResponse)
async def delete_item(
    item_id: str,
    request: Request,
    admin: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Delete a menu item.

    Items already referenced by orders are marked unavailable instead,
    keeping order history intact.
    """
    item = await _get_item(db, item_id)
    used = (
        await db.execute(select(func.count(OrderItem.id)).where(OrderItem.menu_item_id == item_id))
    ).scalar() or 0

    if used:
        item.is_available = False
        await db.commit()
        message = "Menu item is referenced by orders and was marked unavailable"
    else:
        await db.delete(item)
        await db.commit()
        message = "Menu item deleted successfully"

    await record_audit(
        db, admin.id, "DELETE_MENU_ITEM", "MenuItem", item_id,
        details={"soft": bool(used)}, request=request,
    )
    return MessageResponse(message=message)
