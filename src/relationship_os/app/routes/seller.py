"""Seller read views: dashboard, quotes, subscriptions, customers."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.routes.auth import require_capability
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import (
    CustomerProfile,
    QuoteWithCustomer,
    SellerCustomerDetailResponse,
    SellerDashboardResponse,
    SellerSubscriptionResponse,
)
from relationship_os.infra.database import get_db
from relationship_os.services.dashboard_service import DashboardService

router = APIRouter(prefix="/seller", tags=["seller"])

seller_dep = require_capability(Capability.VIEW_SELLER_DASHBOARD)


@router.get("/dashboard", response_model=SellerDashboardResponse)
async def dashboard(
    user: User = Depends(seller_dep),
    db: AsyncSession = Depends(get_db),
):
    data = await DashboardService(db).seller_dashboard(user)
    return SellerDashboardResponse.model_validate(data)


@router.get("/quotes", response_model=list[QuoteWithCustomer])
async def quotes(
    user: User = Depends(seller_dep),
    db: AsyncSession = Depends(get_db),
):
    rows = await DashboardService(db).seller_quotes(user)
    return [QuoteWithCustomer.model_validate(q) for q in rows]


@router.get("/subscriptions", response_model=list[SellerSubscriptionResponse])
async def subscriptions(
    user: User = Depends(seller_dep),
    db: AsyncSession = Depends(get_db),
):
    rows = await DashboardService(db).seller_subscriptions(user)
    return [SellerSubscriptionResponse.model_validate(s) for s in rows]


@router.get("/customers", response_model=list[CustomerProfile])
async def customers(
    user: User = Depends(seller_dep),
    db: AsyncSession = Depends(get_db),
):
    rows = await DashboardService(db).seller_customers(user)
    return [CustomerProfile.model_validate(c) for c in rows]


@router.get("/customers/{customer_id}", response_model=SellerCustomerDetailResponse)
async def customer_detail(
    customer_id: str,
    user: User = Depends(seller_dep),
    db: AsyncSession = Depends(get_db),
):
    data = await DashboardService(db).seller_customer_detail(user, customer_id)
    return SellerCustomerDetailResponse.model_validate(data)
