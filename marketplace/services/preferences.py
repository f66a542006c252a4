import json
import logging
from typing import Any, List, Optional

from marketplace.services.errors import InvalidRequest

logger = logging.getLogger(__name__)

PREFERENCES_TABLE = "user_preferences"
SUPPORTED_LANGUAGES = ("fr", "en")
DEFAULT_LANGUAGE = "fr"


def favorites_key(user_id: str) -> str:
    return f"favorites:{user_id}"


def language_key(user_id: str) -> str:
    return f"language:{user_id}"


def read_value(supabase, key: str) -> Optional[str]:
    rows = supabase.table(PREFERENCES_TABLE).select("value").eq("key", key).execute().data
    return rows[0]["value"] if rows else None


def write_value(supabase, key: str, value: Any) -> None:
    supabase.table(PREFERENCES_TABLE).upsert(
        {"key": key, "value": json.dumps(value)},
        on_conflict="key",
    ).execute()


def parse_favorites(stored: Optional[str]) -> List[str]:
    if not stored:
        return []
    try:
        parsed = json.loads(stored)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not read stored favorites: {str(e)}")
        return []
    return parsed if isinstance(parsed, list) else []


def get_favorites(supabase, user_id: str) -> List[str]:
    return parse_favorites(read_value(supabase, favorites_key(user_id)))


def toggle_favorite(supabase, user_id: str, listing_id: str) -> List[str]:
    favorites = get_favorites(supabase, user_id)
    if not listing_id:
        return favorites

    if listing_id in favorites:
        favorites = [fav for fav in favorites if fav != listing_id]
    else:
        favorites.append(listing_id)

    write_value(supabase, favorites_key(user_id), favorites)
    return favorites


def detect_language(accept_language: Optional[str]) -> str:
    # "en-CA,en;q=0.9,fr;q=0.8" -> "en"
    if not accept_language:
        return DEFAULT_LANGUAGE
    first = accept_language.split(",")[0].split(";")[0].strip()
    return "en" if first.split("-")[0].lower() == "en" else DEFAULT_LANGUAGE


def get_language(supabase, user_id: str, accept_language: Optional[str] = None) -> str:
    stored = read_value(supabase, language_key(user_id))
    if stored:
        try:
            language = json.loads(stored)
        except json.JSONDecodeError as e:
            logger.warning(f"Could not read stored language of user {user_id}: {str(e)}")
            language = None
        if language in SUPPORTED_LANGUAGES:
            return language
    return detect_language(accept_language)


def set_language(supabase, user_id: str, language: str) -> str:
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidRequest(f"Unsupported language: {language}")
    write_value(supabase, language_key(user_id), language)
    return language
