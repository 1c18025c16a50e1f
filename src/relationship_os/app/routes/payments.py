"""Payment routes: hosted checkout for a quote total."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings, get_settings
from relationship_os.app.routes.auth import require_capability
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import CheckoutResponse
from relationship_os.infra.database import get_db
from relationship_os.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/checkout/{quote_id}", response_model=CheckoutResponse)
async def checkout(
    quote_id: str,
    user: User = Depends(require_capability(Capability.CHECKOUT)),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    url = await PaymentService(db, settings).create_checkout(user, quote_id)
    return {"url": url}
