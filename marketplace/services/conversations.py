import logging
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from marketplace.services.errors import NO_ROWS, AuthenticationRequired, InvalidRequest, NotAllowed
from marketplace.services.storage import ImageUpload, message_image_path, upload_image

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown user"
MAX_MESSAGE_IMAGE_BYTES = 5 * 1024 * 1024

CONVERSATION_WITH_LISTING = """
    *,
    listings (
        id,
        title,
        price,
        user_id,
        listing_images (
            id,
            path,
            display_order
        )
    )
"""


def display_user(profile: Optional[Dict]) -> Dict[str, Any]:
    if not profile:
        return {"id": None, "first_name": None, "last_name": None, "full_name": UNKNOWN_USER}
    return {
        "id": profile.get("id"),
        "first_name": profile.get("first_name"),
        "last_name": profile.get("last_name"),
        "full_name": f"{profile.get('first_name')} {profile.get('last_name')}",
    }


def fetch_profiles(supabase, user_ids) -> Dict[str, Dict]:
    user_ids = list(user_ids)
    if not user_ids:
        return {}
    profiles = supabase.table("profiles").select("id, first_name, last_name").in_("id", user_ids).execute().data or []
    return {profile["id"]: profile for profile in profiles}


def fetch_profile(supabase, user_id: str) -> Optional[Dict]:
    return fetch_profiles(supabase, [user_id]).get(user_id)


def with_sorted_listing(conversation: Dict) -> Dict:
    listing = dict(conversation.get("listings") or {})
    listing["listing_images"] = sorted(
        listing.get("listing_images") or [],
        key=lambda img: img.get("display_order") or 0,
    )
    return listing


def authorize_participant(conversation: Dict, user_id: str) -> None:
    """The caller must be exactly one of buyer or seller."""
    is_buyer = conversation["buyer_id"] == user_id
    is_seller = conversation["seller_id"] == user_id
    if not is_buyer and not is_seller:
        raise NotAllowed("You do not have access to this conversation")
    # Should be impossible, a listing owner never gets a conversation as buyer
    if is_buyer and is_seller:
        raise NotAllowed("You cannot access this conversation")


def get_or_create_conversation(supabase, user_id: Optional[str], listing_id: str) -> Dict[str, Any]:
    if not user_id:
        raise AuthenticationRequired("You must be signed in")

    try:
        listing = supabase.table("listings").select("user_id").eq("id", listing_id).single().execute().data
        seller_id = listing["user_id"]

        if user_id == seller_id:
            raise NotAllowed("You cannot start a conversation on your own listing")

        try:
            existing = supabase \
                .table("conversations") \
                .select("*") \
                .eq("listing_id", listing_id) \
                .eq("buyer_id", user_id) \
                .single() \
                .execute().data
        except APIError as e:
            if e.code != NO_ROWS:
                raise
            existing = None

        if existing:
            return existing

        conversation = supabase.table("conversations").insert({
            "listing_id": listing_id,
            "buyer_id": user_id,
            "seller_id": seller_id,
        }).execute().data[0]
    except Exception as e:
        logger.error(f"Error creating or fetching conversation for listing {listing_id}: {str(e)}")
        raise

    logger.info(f"Created conversation {conversation['id']} on listing {listing_id}")
    return conversation


def get_user_conversations(supabase, user_id: Optional[str]) -> List[Dict[str, Any]]:
    """
    Conversations the caller takes part in, newest first.
    Conversations without any message are left out of the inbox.
    """
    if not user_id:
        raise AuthenticationRequired("You must be signed in")

    try:
        conversations = supabase \
            .table("conversations") \
            .select(CONVERSATION_WITH_LISTING) \
            .or_(f"buyer_id.eq.{user_id},seller_id.eq.{user_id}") \
            .order("updated_at", desc=True) \
            .execute().data or []

        if not conversations:
            return []

        other_ids = {
            conv["seller_id"] if conv["buyer_id"] == user_id else conv["buyer_id"]
            for conv in conversations
        }
        profiles = fetch_profiles(supabase, other_ids)

        messages = supabase \
            .table("messages") \
            .select("conversation_id") \
            .in_("conversation_id", [conv["id"] for conv in conversations]) \
            .execute().data or []
        with_messages = {msg["conversation_id"] for msg in messages}
    except Exception as e:
        logger.error(f"Error fetching conversations for user {user_id}: {str(e)}")
        raise

    result = []
    for conv in conversations:
        if conv["id"] not in with_messages:
            continue
        is_buyer = conv["buyer_id"] == user_id
        other_id = conv["seller_id"] if is_buyer else conv["buyer_id"]
        result.append({
            **conv,
            "other_user": display_user(profiles.get(other_id)),
            "listing": with_sorted_listing(conv),
            "is_buyer": is_buyer,
        })
    return result


def get_conversation_with_messages(supabase, user_id: Optional[str], conversation_id: str) -> Dict[str, Any]:
    if not user_id:
        raise AuthenticationRequired("You must be signed in")

    try:
        conversation = supabase \
            .table("conversations") \
            .select(CONVERSATION_WITH_LISTING) \
            .eq("id", conversation_id) \
            .single() \
            .execute().data

        authorize_participant(conversation, user_id)

        messages = supabase \
            .table("messages") \
            .select("*") \
            .eq("conversation_id", conversation_id) \
            .order("created_at") \
            .execute().data or []

        participants = {conversation["buyer_id"], conversation["seller_id"]}
        # Drop anything not sent by one of the two participants
        messages = [msg for msg in messages if msg["sender_id"] in participants]

        profiles = fetch_profiles(supabase, participants)
    except Exception as e:
        logger.error(f"Error fetching conversation {conversation_id}: {str(e)}")
        raise

    is_buyer = conversation["buyer_id"] == user_id
    other_id = conversation["seller_id"] if is_buyer else conversation["buyer_id"]

    return {
        **conversation,
        "other_user": display_user(profiles.get(other_id)),
        "listing": with_sorted_listing(conversation),
        "is_buyer": is_buyer,
        "messages": [
            {
                **msg,
                "sender": display_user(profiles.get(msg["sender_id"])),
                "is_from_current_user": msg["sender_id"] == user_id,
            }
            for msg in messages
        ],
    }


def send_message(
    supabase,
    user_id: Optional[str],
    conversation_id: str,
    content: Optional[str],
    image_file: Optional[ImageUpload] = None,
) -> Dict[str, Any]:
    if not user_id:
        raise AuthenticationRequired("You must be signed in")

    try:
        conversation = supabase \
            .table("conversations") \
            .select("buyer_id, seller_id, listing_id") \
            .eq("id", conversation_id) \
            .single() \
            .execute().data

        authorize_participant(conversation, user_id)

        text = (content or "").strip()
        if not text and not image_file:
            raise InvalidRequest("A message must contain text or an image")

        image_url = None
        if image_file:
            if image_file.size > MAX_MESSAGE_IMAGE_BYTES:
                raise InvalidRequest("The image is too large (max 5MB)")
            image_url = upload_image(supabase, message_image_path(conversation_id), image_file)

        message = supabase.table("messages").insert({
            "conversation_id": conversation_id,
            "sender_id": user_id,
            "content": text or None,
            "image_url": image_url,
        }).execute().data[0]

        sender = fetch_profile(supabase, user_id)
    except Exception as e:
        logger.error(f"Error sending message in conversation {conversation_id}: {str(e)}")
        raise

    return {
        **message,
        "sender": display_user(sender),
        "is_from_current_user": True,
    }
