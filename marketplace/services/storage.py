import logging
import os
import re
import time
from typing import Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel
from storage3.utils import StorageException

load_dotenv()

logger = logging.getLogger(__name__)

LISTING_IMAGES_BUCKET = os.getenv("LISTING_IMAGES_BUCKET", "listing-images")
CACHE_CONTROL_SECONDS = "3600"
# Rejected by the storage API, or never reached it
STORAGE_ERRORS = (StorageException, httpx.HTTPError)


class ImageUpload(BaseModel):
    """An uploaded image, already read into memory."""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return self.filename.split(".")[-1]

    @property
    def size(self) -> int:
        return len(self.content)


def timestamp_ms() -> int:
    return int(time.time() * 1000)


def listing_image_path(listing_id: str, index: int) -> str:
    return f"listings/{listing_id}/{timestamp_ms()}-{index}"


def message_image_path(conversation_id: str) -> str:
    return f"messages/{conversation_id}/{timestamp_ms()}"


def upload_image(supabase, path_stem: str, image: ImageUpload) -> str:
    """
    Upload an image to the listing images bucket and return its public URL.
    Raises one of STORAGE_ERRORS when the upload fails.
    """
    path = f"{path_stem}.{image.extension}"
    bucket = supabase.storage.from_(LISTING_IMAGES_BUCKET)

    file_options = {"cache-control": CACHE_CONTROL_SECONDS, "upsert": "false"}
    if image.content_type:
        file_options["content-type"] = image.content_type

    bucket.upload(path, image.content, file_options)
    return bucket.get_public_url(path)


def storage_path_from_url(public_url: str) -> Optional[str]:
    # Public URLs look like .../object/public/<bucket>/<path>
    match = re.search(rf"{re.escape(LISTING_IMAGES_BUCKET)}/(.+)", public_url or "")
    if match and match.group(1):
        return match.group(1)
    return None


def remove_image(supabase, public_url: str) -> bool:
    """Best-effort removal of a stored image. Returns False if it could not be removed."""
    file_path = storage_path_from_url(public_url)
    if not file_path:
        logger.warning(f"Could not extract a storage path from {public_url}")
        return False

    try:
        supabase.storage.from_(LISTING_IMAGES_BUCKET).remove([file_path])
        return True
    except STORAGE_ERRORS as e:
        logger.warning(f"Error removing file {file_path}: {str(e)}")
        return False
