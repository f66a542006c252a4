import logging
import re
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from marketplace.schemas.listing import ListingCreate, ListingFilters, ListingSort, ListingUpdate
from marketplace.services.errors import AuthenticationRequired, NotAllowed
from marketplace.services.storage import STORAGE_ERRORS, ImageUpload, listing_image_path, remove_image, upload_image

logger = logging.getLogger(__name__)

LISTINGS_VIEW = "listings_with_profiles"
LISTING_WITH_IMAGES = """
    *,
    listing_images!listing_images_listing_id_fkey (
        id,
        path,
        display_order
    )
"""
SEARCH_COLUMNS = ("title", "description", "course", "category")
# Flattened profile columns exposed by the listings_with_profiles view
PROFILE_COLUMNS = ("profile_id", "first_name", "last_name", "profile_email", "profile_phone")
# contact flag -> column holding the contact value
CONTACT_COLUMNS = {
    "contact_cell": "contact_phone",
    "contact_email": "contact_email_value",
    "contact_other": "contact_other_value",
}


def sort_images(images: Optional[List[Dict]]) -> List[Dict]:
    return sorted(images or [], key=lambda img: img.get("display_order") or 0)


def search_filter(search: Optional[str]) -> Optional[str]:
    """
    Turn free text into a PostgREST `or` filter: every word is matched
    (ILIKE) against title, description, course and category.
    """
    if not search:
        return None

    conditions = []
    for word in search.split():
        # , ( ) are reserved by the PostgREST or() syntax
        word = re.sub(r"[,()]", "", word)
        if not word:
            continue
        conditions.extend(f"{column}.ilike.%{word}%" for column in SEARCH_COLUMNS)

    return ",".join(conditions) or None


def build_listings_query(supabase, filters: ListingFilters, sort: ListingSort, limit: int, offset: int):
    query = supabase.table(LISTINGS_VIEW).select(LISTING_WITH_IMAGES, count="exact")

    if filters.category:
        query = query.eq("category", filters.category)

    # Only active listings unless a status is asked for
    query = query.eq("status", filters.status or "active")

    if filters.user_id:
        query = query.eq("user_id", filters.user_id)

    if filters.condition:
        query = query.eq("condition", filters.condition)

    search = search_filter(filters.search)
    if search:
        query = query.or_(search)

    if filters.min_price is not None:
        query = query.gte("price", filters.min_price)

    if filters.max_price is not None:
        query = query.lte("price", filters.max_price)

    query = query.order(sort.field, desc=sort.order != "asc")
    return query.range(offset, offset + limit - 1)


def reshape_listing(row: Dict[str, Any]) -> Dict[str, Any]:
    """Nest the view's profile columns under `profiles` and order the images."""
    listing = {key: value for key, value in row.items() if key not in PROFILE_COLUMNS}
    listing["listing_images"] = sort_images(row.get("listing_images"))
    listing["profiles"] = {
        "id": row["profile_id"],
        "first_name": row.get("first_name"),
        "last_name": row.get("last_name"),
        "email": row.get("profile_email"),
    } if row.get("profile_id") else None
    return listing


def get_listings(
    supabase,
    filters: Optional[ListingFilters] = None,
    sort: Optional[ListingSort] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    filters = filters or ListingFilters()
    sort = sort or ListingSort()

    try:
        response = build_listings_query(supabase, filters, sort, limit, offset).execute()
    except Exception as e:
        logger.error(f"Error fetching listings: {str(e)}")
        raise

    return {
        "listings": [reshape_listing(row) for row in response.data or []],
        "total": response.count or 0,
    }


def get_listing_by_id(supabase, listing_id: str) -> Dict[str, Any]:
    try:
        row = supabase \
            .table(LISTINGS_VIEW) \
            .select(LISTING_WITH_IMAGES) \
            .eq("id", listing_id) \
            .single() \
            .execute().data
    except Exception as e:
        logger.error(f"Error fetching listing {listing_id}: {str(e)}")
        raise

    listing = reshape_listing(row)
    listing["images"] = [{"id": img["id"], "url": img["path"]} for img in listing["listing_images"]]
    return listing


def parse_price(price: Any) -> float:
    try:
        return float(price)
    except (TypeError, ValueError):
        return 0.0


def listing_payload(user_id: str, data: ListingCreate) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "category": data.category,
        "program": data.program or None,
        "course": data.course or None,
        "title": data.title,
        "condition": data.condition,
        "description": data.description or None,
        "price": parse_price(data.price),
        "contact_cell": data.contact_cell,
        "contact_email": data.contact_email,
        "contact_other": data.contact_other,
        "contact_phone": data.phone if data.contact_cell else None,
        "contact_email_value": data.email if data.contact_email else None,
        "contact_other_value": data.other_contact if data.contact_other else None,
        "category_attributes": data.category_attributes or {},
        "status": "active",
    }


def upload_listing_images(supabase, listing_id: str, image_files: List[ImageUpload], start_order: int = 0) -> List[str]:
    """
    Upload images one by one and record them in listing_images.
    A failed image is logged and skipped; the public URLs of the stored ones are returned.
    """
    image_urls = []
    for i, image in enumerate(image_files):
        try:
            public_url = upload_image(supabase, listing_image_path(listing_id, i), image)
        except STORAGE_ERRORS as e:
            logger.warning(f"Error uploading image {i} for listing {listing_id}: {str(e)}")
            continue

        try:
            supabase.table("listing_images").insert({
                "listing_id": listing_id,
                "path": public_url,
                "display_order": start_order + i,
            }).execute()
        except APIError as e:
            logger.warning(f"Error saving image record {i} for listing {listing_id}: {e.message}")
            continue

        image_urls.append(public_url)

    logger.info(f"Stored {len(image_urls)}/{len(image_files)} images for listing {listing_id}")
    return image_urls


def create_listing(supabase, user_id: Optional[str], data: ListingCreate, image_files: Optional[List[ImageUpload]] = None) -> Dict[str, Any]:
    if not user_id:
        raise AuthenticationRequired("You must be signed in to create a listing")

    try:
        listing = supabase.table("listings").insert(listing_payload(user_id, data)).execute().data[0]
        logger.info(f"Created listing {listing['id']} for user {user_id}")

        image_urls = []
        if image_files:
            image_urls = upload_listing_images(supabase, listing["id"], image_files)

        complete_listing = supabase \
            .table("listings") \
            .select("*, listing_images (id, path, display_order)") \
            .eq("id", listing["id"]) \
            .single() \
            .execute().data
    except Exception as e:
        logger.error(f"Error creating listing: {str(e)}")
        raise

    complete_listing["listing_images"] = sort_images(complete_listing.get("listing_images"))
    complete_listing["images"] = image_urls
    return complete_listing


def verify_listing_owner(supabase, user_id: str, listing_id: str, action: str) -> None:
    existing = supabase.table("listings").select("user_id").eq("id", listing_id).single().execute().data
    if existing["user_id"] != user_id:
        raise NotAllowed(f"You can only {action} your own listings")


def next_display_order(supabase, listing_id: str) -> int:
    last = supabase \
        .table("listing_images") \
        .select("display_order") \
        .eq("listing_id", listing_id) \
        .order("display_order", desc=True) \
        .limit(1) \
        .execute().data
    return last[0]["display_order"] + 1 if last else 0


def remove_unkept_images(supabase, listing_id: str, keep_image_ids: List[str]) -> None:
    keep = {str(image_id) for image_id in keep_image_ids}
    images = supabase.table("listing_images").select("id, path").eq("listing_id", listing_id).execute().data or []

    for image in images:
        if str(image["id"]) in keep:
            continue
        remove_image(supabase, image["path"])
        supabase.table("listing_images").delete().eq("id", image["id"]).execute()


def update_listing(
    supabase,
    user_id: Optional[str],
    listing_id: str,
    updates: ListingUpdate,
    new_image_files: Optional[List[ImageUpload]] = None,
) -> Dict[str, Any]:
    if not user_id:
        raise AuthenticationRequired("You must be signed in to update a listing")

    try:
        verify_listing_owner(supabase, user_id, listing_id, "update")

        changes = updates.model_dump(exclude_unset=True)
        keep_image_ids = changes.pop("keep_image_ids", None)

        # Unchecking a contact option clears its value
        for flag, value_column in CONTACT_COLUMNS.items():
            if flag in changes and not changes[flag]:
                changes[value_column] = None

        if keep_image_ids is not None:
            remove_unkept_images(supabase, listing_id, keep_image_ids)

        if new_image_files:
            upload_listing_images(supabase, listing_id, new_image_files, next_display_order(supabase, listing_id))

        if changes:
            updated = supabase.table("listings").update(changes).eq("id", listing_id).execute().data[0]
        else:
            updated = supabase.table("listings").select("*").eq("id", listing_id).single().execute().data
    except Exception as e:
        logger.error(f"Error updating listing {listing_id}: {str(e)}")
        raise

    logger.info(f"Updated listing {listing_id}")
    return updated


def delete_listing(supabase, user_id: Optional[str], listing_id: str) -> None:
    if not user_id:
        raise AuthenticationRequired("You must be signed in to delete a listing")

    try:
        verify_listing_owner(supabase, user_id, listing_id, "delete")

        images = supabase.table("listing_images").select("path").eq("listing_id", listing_id).execute().data or []
        for image in images:
            remove_image(supabase, image["path"])

        # listing_images rows go with the listing (ON DELETE CASCADE)
        supabase.table("listings").delete().eq("id", listing_id).execute()
    except Exception as e:
        logger.error(f"Error deleting listing {listing_id}: {str(e)}")
        raise

    logger.info(f"Deleted listing {listing_id}")
