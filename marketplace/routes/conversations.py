from fastapi import APIRouter, Depends, File, Form, UploadFile, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from postgrest.exceptions import APIError
from typing import Optional
import asyncio
import logging
from marketplace.dependencies.auth import user_supabase_client, websocket_supabase_client
from marketplace.schemas.conversation import ConversationCreate
from marketplace.services.conversations import (
    authorize_participant,
    get_conversation_with_messages,
    get_or_create_conversation,
    get_user_conversations,
    send_message,
)
from marketplace.services.errors import NotAllowed
from marketplace.services.realtime import MessageFeed, subscribe_to_messages
from marketplace.utils.uploads import read_upload

logger = logging.getLogger(__name__)

router = APIRouter()

# -------- Start (or resume) a conversation about a listing --------
@router.post("")
def start_conversation(payload: ConversationCreate, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    return get_or_create_conversation(supabase, user_id, payload.listing_id)

# -------- Inbox --------
@router.get("")
def list_conversations(context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    return get_user_conversations(supabase, user_id)

# -------- Single conversation with its messages --------
@router.get("/{conversation_id}")
def get_conversation(conversation_id: str, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]
    return get_conversation_with_messages(supabase, user_id, conversation_id)

# -------- Send a message --------
@router.post("/{conversation_id}/messages", status_code=201)
async def post_message(
    conversation_id: str,
    content: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    context=Depends(user_supabase_client),
):
    supabase = context["supabase"]
    user_id = context["user_id"]
    image_file = await read_upload(image)
    return await run_in_threadpool(send_message, supabase, user_id, conversation_id, content, image_file)

# -------- Live messages --------
@router.websocket("/{conversation_id}/ws")
async def conversation_feed(
    websocket: WebSocket,
    conversation_id: str,
    context=Depends(websocket_supabase_client),
):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        conversation = (await supabase
            .table("conversations")
            .select("buyer_id, seller_id")
            .eq("id", conversation_id)
            .single()
            .execute()).data
        authorize_participant(conversation, user_id)

        existing = (await supabase
            .table("messages")
            .select("id")
            .eq("conversation_id", conversation_id)
            .execute()).data or []
    except (APIError, NotAllowed) as e:
        logger.warning(f"Refusing message feed of conversation {conversation_id} to user {user_id}: {str(e)}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    # Messages already in the conversation are never pushed again
    feed = MessageFeed(existing)
    incoming: asyncio.Queue = asyncio.Queue()

    await websocket.accept()
    unsubscribe = await subscribe_to_messages(supabase, conversation_id, user_id, incoming.put)

    async def forward():
        while True:
            message = await incoming.get()
            if feed.add(message):
                await websocket.send_json(message)

    forward_task = asyncio.create_task(forward())
    try:
        # Nothing is expected from the client; reading only notices the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"User {user_id} left the message feed of conversation {conversation_id}")
    finally:
        forward_task.cancel()
        await unsubscribe()
