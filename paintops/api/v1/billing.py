import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from paintops.api.deps import STAFF_ROLES, get_current_user, get_db, require_role
from paintops.common.exceptions import BadRequestError, ConflictError, NotFoundError
from paintops.core.billing import service as billing_service
from paintops.core.billing.schemas import BillingDetailCreate, BillingDetailResponse
from paintops.db.models.profile import Profile
from paintops.db.models.property import BillingCategory, BillingDetail, Property, UnitSize

router = APIRouter(tags=["Properties & Billing"])


# ---------- Schemas ----------


class PropertyCreateRequest(BaseModel):
    property_name: str
    address: str | None = None
    address_2: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    ap_name: str | None = None
    ap_email: EmailStr | None = None


class PropertyResponse(PropertyCreateRequest):
    id: uuid.UUID
    ap_email: str | None = None

    model_config = {"from_attributes": True}


class UnitSizeRequest(BaseModel):
    unit_size_label: str


class UnitSizeResponse(UnitSizeRequest):
    id: uuid.UUID

    model_config = {"from_attributes": True}


class CategoryRequest(BaseModel):
    name: str
    description: str | None = None
    sort_order: int = 0


class CategoryResponse(CategoryRequest):
    id: uuid.UUID

    model_config = {"from_attributes": True}


def _detail_response(detail: BillingDetail) -> BillingDetailResponse:
    return BillingDetailResponse(
        id=detail.id,
        property_id=detail.property_id,
        category_id=detail.category_id,
        category_name=detail.category.name if detail.category else None,
        unit_size_id=detail.unit_size_id,
        unit_size_label=detail.unit_size.unit_size_label if detail.unit_size else None,
        bill_amount=detail.bill_amount,
        sub_pay_amount=detail.sub_pay_amount,
        profit_amount=detail.profit_amount,
        is_hourly=detail.is_hourly,
    )


async def _get_property(db: AsyncSession, property_id: uuid.UUID) -> Property:
    result = await db.execute(
        select(Property).where(Property.id == property_id, Property.is_deleted.is_(False))
    )
    prop = result.scalar_one_or_none()
    if not prop:
        raise NotFoundError("Property", str(property_id))
    return prop


# ---------- Endpoints ----------


@router.post("/properties", response_model=PropertyResponse, status_code=201)
async def create_property(
    body: PropertyCreateRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    prop = Property(**body.model_dump())
    db.add(prop)
    await db.flush()
    await db.refresh(prop)
    return prop


@router.get("/properties", response_model=list[PropertyResponse])
async def list_properties(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Property).where(Property.is_deleted.is_(False)).order_by(Property.property_name)
    )
    return result.scalars().all()


@router.get("/properties/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: uuid.UUID,
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _get_property(db, property_id)


@router.post("/unit-sizes", response_model=UnitSizeResponse, status_code=201)
async def create_unit_size(
    body: UnitSizeRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(UnitSize).where(UnitSize.unit_size_label == body.unit_size_label))
    if result.scalar_one_or_none():
        raise ConflictError(f"Unit size '{body.unit_size_label}' already exists")
    unit_size = UnitSize(unit_size_label=body.unit_size_label)
    db.add(unit_size)
    await db.flush()
    await db.refresh(unit_size)
    return unit_size


@router.get("/unit-sizes", response_model=list[UnitSizeResponse])
async def list_unit_sizes(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(UnitSize).where(UnitSize.is_deleted.is_(False)).order_by(UnitSize.unit_size_label)
    )
    return result.scalars().all()


@router.post("/billing-categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    body: CategoryRequest,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(BillingCategory).where(BillingCategory.name == body.name))
    if result.scalar_one_or_none():
        raise ConflictError(f"Billing category '{body.name}' already exists")
    category = BillingCategory(**body.model_dump())
    db.add(category)
    await db.flush()
    await db.refresh(category)
    return category


@router.get("/billing-categories", response_model=list[CategoryResponse])
async def list_categories(
    current_user: Profile = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(BillingCategory)
        .where(BillingCategory.is_deleted.is_(False))
        .order_by(BillingCategory.sort_order, BillingCategory.name)
    )
    return result.scalars().all()


@router.get("/properties/{property_id}/billing-details", response_model=list[BillingDetailResponse])
async def list_billing_details(
    property_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    await _get_property(db, property_id)
    details = await billing_service.list_billing_details(db, property_id)
    return [_detail_response(d) for d in details]


@router.post(
    "/properties/{property_id}/billing-details",
    response_model=BillingDetailResponse,
    status_code=201,
)
async def create_billing_detail(
    property_id: uuid.UUID,
    body: BillingDetailCreate,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    await _get_property(db, property_id)
    try:
        profit = body.normalized_profit()
    except ValueError as e:
        raise BadRequestError(str(e))

    detail = await billing_service.create_billing_detail(db, property_id, body, profit)
    await billing_service.refresh_property_totals(db, property_id)
    details = await billing_service.list_billing_details(db, property_id)
    return _detail_response(next(d for d in details if d.id == detail.id))


@router.delete("/billing-details/{detail_id}", status_code=204)
async def delete_billing_detail(
    detail_id: uuid.UUID,
    current_user: Profile = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    detail = await billing_service.delete_billing_detail(db, detail_id)
    await billing_service.refresh_property_totals(db, detail.property_id)
