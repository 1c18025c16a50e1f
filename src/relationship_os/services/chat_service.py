"""Chat: append-only message log between one customer and one seller."""

import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.domain.enums import Role
from relationship_os.domain.models import ChatMessage, User
from relationship_os.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000


def is_customer(user: User) -> bool:
    return user.role == Role.CUSTOMER.value


class ChatService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_conversation(self, user: User, other_user_id: str) -> list[ChatMessage]:
        """Messages between *user* and the counterpart, oldest first."""
        result = await self.db.execute(
            select(ChatMessage)
            .where(
                or_(
                    and_(ChatMessage.customer_id == user.id, ChatMessage.seller_id == other_user_id),
                    and_(ChatMessage.customer_id == other_user_id, ChatMessage.seller_id == user.id),
                )
            )
            .order_by(ChatMessage.created_at.asc())
        )
        return list(result.scalars().all())

    async def send_message(self, sender: User, other_user_id: str, content: str) -> ChatMessage:
        """Append a message. The customer/seller pair comes from roles, not from who sends."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("content is required")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"content must be at most {MAX_MESSAGE_LENGTH} characters")

        other = await self.db.get(User, other_user_id)
        if other is None or other.id == sender.id:
            raise NotFoundError("Recipient not found")
        if is_customer(sender) == is_customer(other):
            raise ValidationError("Messages are exchanged between a customer and a seller")

        customer, seller = (sender, other) if is_customer(sender) else (other, sender)
        message = ChatMessage(
            sender_id=sender.id,
            customer_id=customer.id,
            seller_id=seller.id,
            content=content,
        )
        self.db.add(message)
        await self.db.commit()

        logger.info("Message %s from %s (customer=%s, seller=%s)", message.id, sender.id, customer.id, seller.id)
        return message
