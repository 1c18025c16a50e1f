"""Customer dashboard route."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.routes.auth import require_capability
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import CustomerDashboardResponse
from relationship_os.infra.database import get_db
from relationship_os.services.dashboard_service import DashboardService

router = APIRouter(prefix="/customer", tags=["customer"])


@router.get("/dashboard", response_model=CustomerDashboardResponse)
async def dashboard(
    user: User = Depends(require_capability(Capability.VIEW_CUSTOMER_DASHBOARD)),
    db: AsyncSession = Depends(get_db),
):
    data = await DashboardService(db).customer_dashboard(user)
    return CustomerDashboardResponse.model_validate(data)
