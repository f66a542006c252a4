import logging
from typing import Any, Dict

from marketplace.schemas.profile import ProfileUpdate
from marketplace.services.errors import InvalidRequest

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, first_name, last_name, email, phone, study_cycle, school_year, created_at"


def get_profile(supabase, user_id: str) -> Dict[str, Any]:
    try:
        return supabase.table("profiles").select(PROFILE_COLUMNS).eq("id", user_id).single().execute().data
    except Exception as e:
        logger.error(f"Error fetching profile {user_id}: {str(e)}")
        raise


def update_profile(supabase, user_id: str, changes: ProfileUpdate) -> Dict[str, Any]:
    """Update the caller's own profile. Email and id are not editable here."""
    payload = changes.model_dump(exclude_unset=True)
    if not payload:
        raise InvalidRequest("Nothing to update")

    try:
        updated = supabase.table("profiles").update(payload).eq("id", user_id).execute().data
    except Exception as e:
        logger.error(f"Error updating profile {user_id}: {str(e)}")
        raise

    logger.info(f"Updated profile {user_id}: {', '.join(payload)}")
    return updated[0]
