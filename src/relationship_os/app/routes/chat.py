"""Chat routes between a customer and a seller."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.routes.auth import get_current_user_dep
from relationship_os.domain.models import User
from relationship_os.domain.schemas import ChatMessageCreate, ChatMessageResponse
from relationship_os.infra.database import get_db
from relationship_os.services.chat_service import ChatService

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get("/{other_user_id}", response_model=list[ChatMessageResponse])
async def conversation(
    other_user_id: str,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    messages = await ChatService(db).list_conversation(user, other_user_id)
    return [ChatMessageResponse.model_validate(m) for m in messages]


@router.post("/{other_user_id}", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    other_user_id: str,
    data: ChatMessageCreate,
    user: User = Depends(get_current_user_dep),
    db: AsyncSession = Depends(get_db),
):
    message = await ChatService(db).send_message(user, other_user_id, data.content)
    return ChatMessageResponse.model_validate(message)
