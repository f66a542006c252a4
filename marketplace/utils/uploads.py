from typing import List, Optional

from fastapi import UploadFile

from marketplace.services.storage import ImageUpload


async def read_upload(file: Optional[UploadFile]) -> Optional[ImageUpload]:
    if file is None or not file.filename:
        return None
    return ImageUpload(
        filename=file.filename,
        content=await file.read(),
        content_type=file.content_type,
    )


async def read_uploads(files: Optional[List[UploadFile]]) -> List[ImageUpload]:
    uploads = []
    for file in files or []:
        upload = await read_upload(file)
        if upload:
            uploads.append(upload)
    return uploads
