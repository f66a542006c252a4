from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from typing import List, Optional
from marketplace.dependencies.auth import supabase_client, user_supabase_client
from marketplace.schemas.listing import ListingCreate, ListingFilters, ListingSort, ListingsPage, ListingUpdate, SortField
from marketplace.services.listings import create_listing, delete_listing, get_listing_by_id, get_listings, update_listing
from marketplace.utils.uploads import read_uploads
from marketplace.utils.validation import validate_listing

router = APIRouter()

# -------- Browse listings --------
@router.get("", response_model=ListingsPage)
def browse_listings(
    category: Optional[str] = None,
    status: Optional[str] = None,
    user_id: Optional[str] = None,
    condition: Optional[str] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_field: SortField = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    supabase=Depends(supabase_client),
):
    filters = ListingFilters(
        category=category,
        status=status,
        user_id=user_id,
        condition=condition,
        search=search,
        min_price=min_price,
        max_price=max_price,
    )
    sort = ListingSort(field=sort_field, order=sort_order)
    return get_listings(supabase, filters, sort, limit, offset)

# -------- Get single listing --------
@router.get("/{listing_id}")
def get_listing(listing_id: str, supabase=Depends(supabase_client)):
    return get_listing_by_id(supabase, listing_id)

# -------- Create listing --------
@router.post("", status_code=201)
async def publish_listing(
    listing: str = Form(..., description="Listing fields as a JSON object"),
    images: List[UploadFile] = File(default=[]),
    context=Depends(user_supabase_client),
):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        data = ListingCreate.model_validate_json(listing)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    error = validate_listing(data.model_dump())
    if error:
        raise HTTPException(status_code=400, detail=error)

    image_files = await read_uploads(images)
    # The Supabase client is synchronous; keep uploads off the event loop
    return await run_in_threadpool(create_listing, supabase, user_id, data, image_files)

# -------- Edit listing --------
@router.put("/{listing_id}")
async def edit_listing(
    listing_id: str,
    updates: str = Form("{}", description="Changed fields as a JSON object, with optional keep_image_ids"),
    images: List[UploadFile] = File(default=[]),
    context=Depends(user_supabase_client),
):
    supabase = context["supabase"]
    user_id = context["user_id"]

    try:
        changes = ListingUpdate.model_validate_json(updates)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

    error = validate_listing(changes.model_dump(exclude_unset=True))
    if error:
        raise HTTPException(status_code=400, detail=error)

    image_files = await read_uploads(images)
    return await run_in_threadpool(update_listing, supabase, user_id, listing_id, changes, image_files)

# -------- Delete listing --------
@router.delete("/{listing_id}")
def remove_listing(listing_id: str, context=Depends(user_supabase_client)):
    supabase = context["supabase"]
    user_id = context["user_id"]

    delete_listing(supabase, user_id, listing_id)
    return {"message": "Deleted"}
