import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from marketplace.services.conversations import display_user

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class MessageFeed:
    """
    The messages a chat view holds. A message the user just sent and its
    realtime echo are the same row, so a message id is only ever kept once.
    """

    def __init__(self, messages: Optional[Iterable[Dict[str, Any]]] = None):
        self.messages: List[Dict[str, Any]] = []
        self._ids = set()
        for message in messages or []:
            self.add(message)

    def __contains__(self, message_id) -> bool:
        return message_id in self._ids

    def __len__(self) -> int:
        return len(self.messages)

    def add(self, message: Dict[str, Any]) -> bool:
        if message["id"] in self._ids:
            return False
        self._ids.add(message["id"])
        self.messages.append(message)
        return True


def inserted_record(payload: Dict[str, Any]) -> Dict[str, Any]:
    data = payload.get("data") or payload
    return data.get("record") or data.get("new") or {}


async def load_message(supabase, message_id, user_id: str) -> Dict[str, Any]:
    message = (await supabase.table("messages").select("*").eq("id", message_id).single().execute()).data
    senders = (await supabase
        .table("profiles")
        .select("id, first_name, last_name")
        .eq("id", message["sender_id"])
        .execute()).data or []

    return {
        **message,
        "sender": display_user(senders[0] if senders else None),
        "is_from_current_user": message["sender_id"] == user_id,
    }


async def subscribe_to_messages(
    supabase,
    conversation_id: str,
    user_id: str,
    callback: MessageCallback,
) -> Callable[[], Awaitable[None]]:
    """
    Listen for new messages of a conversation on an async Supabase client.

    The change event only carries the raw row, so each message is read again
    with its sender profile before `callback` gets it. Returns a coroutine
    function that removes the channel.
    """
    pending = set()

    async def deliver(message_id):
        try:
            message = await load_message(supabase, message_id, user_id)
        except Exception as e:
            logger.error(f"Error loading realtime message {message_id}: {str(e)}")
            return

        result = callback(message)
        if asyncio.iscoroutine(result):
            await result

    def on_insert(payload):
        record = inserted_record(payload)
        if not record.get("id"):
            logger.warning(f"Ignoring realtime event without a message id on conversation {conversation_id}")
            return
        task = asyncio.ensure_future(deliver(record["id"]))
        pending.add(task)
        task.add_done_callback(pending.discard)

    channel = supabase.channel(f"messages:{conversation_id}")
    channel.on_postgres_changes(
        event="INSERT",
        schema="public",
        table="messages",
        filter=f"conversation_id=eq.{conversation_id}",
        callback=on_insert,
    )
    await channel.subscribe()
    logger.info(f"Subscribed to messages of conversation {conversation_id}")

    async def unsubscribe():
        for task in list(pending):
            task.cancel()
        await supabase.remove_channel(channel)
        logger.info(f"Unsubscribed from messages of conversation {conversation_id}")

    return unsubscribe
