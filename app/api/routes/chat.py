"""
Customer support chat.

A chat has two sides: the customer (registered or guest) and the
restaurant, answered from the admin dashboard. Messages are relayed to
``role:ADMIN`` and to the customer's own socket room.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError
from app.database import get_db
from app.dependencies import get_current_user, get_optional_user
from app.models import Chat, ChatMessage, ChatStatus, Role, User, utcnow
from app.realtime import manager, role_room, user_room
from app.schemas import (
    ChatCreate,
    ChatEnvelope,
    ChatListResponse,
    ChatMessageCreate,
    ChatMessageEnvelope,
    ChatMessageResponse,
    ChatResponse,
    ChatStatusUpdate,
    ChatSummaryResponse,
    UnreadCountResponse,
)

router = APIRouter(prefix="/api/chat", tags=["Chat"])
logger = logging.getLogger(__name__)

CUSTOMER_SIDE = Role.CUSTOMER.value
RESTAURANT_SIDE = Role.ADMIN.value
ADMIN_ROOM = role_room(Role.ADMIN.value)


def side_of(user: User) -> str:
    """Staff all answer on the restaurant side."""
    return CUSTOMER_SIDE if user.role == Role.CUSTOMER else RESTAURANT_SIDE


def other_side(user: User) -> str:
    return RESTAURANT_SIDE if user.role == Role.CUSTOMER else CUSTOMER_SIDE


async def _load_chat(db: AsyncSession, chat_id: str) -> Chat:
    result = await db.execute(
        select(Chat).where(Chat.id == chat_id).execution_options(populate_existing=True)
    )
    chat = result.unique().scalar_one_or_none()
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


async def _notify(event: str, data: dict, chat: Chat) -> None:
    rooms = [ADMIN_ROOM]
    if chat.customer_id:
        rooms.append(user_room(chat.customer_id))
    await manager.emit(event, data, *rooms)


# =============================================================================
# READ
# =============================================================================

@router.get("", response_model=ChatListResponse)
async def list_chats(
    status_filter: Optional[ChatStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ChatListResponse:
    conditions = []
    if user.role == Role.CUSTOMER:
        conditions.append(Chat.customer_id == user.id)
    if status_filter:
        conditions.append(Chat.status == status_filter)

    result = await db.execute(select(Chat).where(*conditions).order_by(Chat.last_message_at.desc()))
    unread_from = other_side(user)

    chats = []
    for chat in result.unique().scalars().all():
        summary = ChatSummaryResponse.model_validate(chat)
        if chat.messages:
            summary.last_message = ChatMessageResponse.model_validate(chat.messages[-1])
        summary.unread_count = sum(
            1 for m in chat.messages if not m.is_read and m.sender_role == unread_from
        )
        chats.append(summary)
    return ChatListResponse(chats=chats)


@router.get("/unread/count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UnreadCountResponse:
    query = (
        select(func.count(ChatMessage.id))
        .join(Chat, ChatMessage.chat_id == Chat.id)
        .where(ChatMessage.is_read.is_(False), ChatMessage.sender_role == other_side(user))
    )
    if user.role == Role.CUSTOMER:
        query = query.where(Chat.customer_id == user.id)
    return UnreadCountResponse(count=(await db.execute(query)).scalar() or 0)


@router.get("/{chat_id}", response_model=ChatResponse)
async def get_chat(
    chat_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """Full conversation; the other side's messages are marked read."""
    chat = await _load_chat(db, chat_id)
    if user.role == Role.CUSTOMER and chat.customer_id != user.id:
        raise NotFoundError("Chat not found")

    await db.execute(
        update(ChatMessage)
        .where(
            ChatMessage.chat_id == chat_id,
            ChatMessage.sender_role == other_side(user),
            ChatMessage.is_read.is_(False),
        )
        .values(is_read=True)
    )
    await db.commit()
    return ChatResponse.model_validate(await _load_chat(db, chat_id))


# =============================================================================
# WRITE
# =============================================================================

@router.post("", response_model=ChatEnvelope, status_code=status.HTTP_201_CREATED)
async def create_chat(
    payload: ChatCreate,
    response: Response,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> ChatEnvelope:
    """
    Open a support chat.

    Signed-in users get their ACTIVE chat back if one exists; guests
    always start a new one.
    """
    if user is not None:
        result = await db.execute(
            select(Chat.id)
            .where(Chat.customer_id == user.id, Chat.status == ChatStatus.ACTIVE)
            .order_by(Chat.created_at.desc())
            .limit(1)
        )
        existing_id = result.scalar_one_or_none()
        if existing_id is not None:
            response.status_code = status.HTTP_200_OK
            chat = await _load_chat(db, existing_id)
            return ChatEnvelope(message="Active chat found", chat=ChatResponse.model_validate(chat))

    if user is not None:
        name = " ".join(p for p in (user.first_name, user.last_name) if p)
        email = user.email
    else:
        name = (payload.customer_name or "").strip()
        email = payload.customer_email

    chat = Chat(
        customer_id=user.id if user else None,
        customer_name=name or "Guest",
        customer_email=email,
        status=ChatStatus.ACTIVE,
    )
    db.add(chat)
    await db.flush()

    if payload.message and payload.message.strip():
        db.add(
            ChatMessage(
                chat_id=chat.id,
                sender_id=user.id if user else None,
                sender_role=CUSTOMER_SIDE,
                sender_name=chat.customer_name,
                message=payload.message.strip(),
            )
        )
    await db.commit()

    chat = await _load_chat(db, chat.id)
    logger.info(f"Chat {chat.id} opened by {chat.customer_id or 'guest'}")
    data = ChatResponse.model_validate(chat)
    await manager.emit("chat:new", data.model_dump(mode="json"), ADMIN_ROOM)

    return ChatEnvelope(message="Chat created", chat=data)


@router.post(
    "/{chat_id}/messages",
    response_model=ChatMessageEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    chat_id: str,
    payload: ChatMessageCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ChatMessageEnvelope:
    chat = await _load_chat(db, chat_id)

    if user.role == Role.CUSTOMER:
        if chat.customer_id is None:
            # Guest chat picked up after signing in
            chat.customer_id = user.id
            chat.customer_name = " ".join(p for p in (user.first_name, user.last_name) if p) or "Customer"
            chat.customer_email = user.email
        elif chat.customer_id != user.id:
            raise ForbiddenError("Access denied")
        sender_name = chat.customer_name or "Customer"
    else:
        sender_name = " ".join(p for p in (user.first_name, user.last_name) if p) or "Admin"

    message = ChatMessage(
        chat_id=chat.id,
        sender_id=user.id,
        sender_role=side_of(user),
        sender_name=sender_name,
        message=payload.message,
    )
    db.add(message)
    chat.last_message_at = utcnow()
    await db.commit()
    await db.refresh(message)

    chat = await _load_chat(db, chat_id)
    message_data = ChatMessageResponse.model_validate(message)
    await _notify("chat:message", {"chat_id": chat.id, "message": message_data.model_dump(mode="json")}, chat)

    return ChatMessageEnvelope(message=message_data, chat=ChatResponse.model_validate(chat))


@router.put("/{chat_id}/status", response_model=ChatResponse)
async def update_chat_status(
    chat_id: str,
    payload: ChatStatusUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    if user.role != Role.ADMIN:
        raise ForbiddenError("Admin access required")

    chat = await _load_chat(db, chat_id)
    chat.status = payload.status
    await db.commit()
    chat = await _load_chat(db, chat_id)

    logger.info(f"Chat {chat.id} -> {payload.status.value} by {user.id}")
    await _notify("chat:status-updated", {"chat_id": chat.id, "status": chat.status.value}, chat)
    return ChatResponse.model_validate(chat)
