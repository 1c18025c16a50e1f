"""Invite routes: issue, validate, accept, list pending."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings, get_settings
from relationship_os.app.routes.auth import require_capability, session_payload
from relationship_os.domain.enums import Capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import (
    InviteAccept,
    InviteCreate,
    InviteCreateResponse,
    InviteInfo,
    InviteLookupResponse,
    InviteResponse,
    PendingInvitesResponse,
    TokenResponse,
)
from relationship_os.infra.database import get_db
from relationship_os.services.invite_service import InviteService

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post("", response_model=InviteCreateResponse, status_code=201)
async def create_invite(
    data: InviteCreate,
    user: User = Depends(require_capability(Capability.ISSUE_INVITES)),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Issue an invite. The raw token is only ever returned here."""
    issued = await InviteService(db, settings).create_invite(
        user, data.email, data.role, data.company_name
    )
    return {
        "invite": InviteResponse.model_validate(issued.invite),
        "token": issued.token,
        "accept_url": issued.accept_url,
    }


@router.get("/validate", response_model=InviteLookupResponse)
async def validate_invite(
    token: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    invite = await InviteService(db, settings).validate_invite(token)
    return {"invite": InviteInfo.model_validate(invite)}


@router.get("/lookup", response_model=InviteLookupResponse)
async def lookup_invite(
    token: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return await validate_invite(token=token, db=db, settings=settings)


@router.post("/accept", response_model=TokenResponse)
async def accept_invite(
    data: InviteAccept,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = await InviteService(db, settings).accept_invite(
        data.token, name=data.name, external_sub=data.external_sub
    )
    return session_payload(result)


@router.post("/consume", response_model=TokenResponse)
async def consume_invite(
    data: InviteAccept,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return await accept_invite(data=data, db=db, settings=settings)


@router.get("/pending", response_model=PendingInvitesResponse)
async def pending_invites(
    user: User = Depends(require_capability(Capability.ISSUE_INVITES)),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    invites = await InviteService(db, settings).list_pending_invites(user)
    return {"invites": [InviteResponse.model_validate(i) for i in invites]}
