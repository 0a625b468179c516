"""Public read access to stored audio objects."""

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from murmur.exceptions import ObjectNotFoundError
from murmur.services.storage import get_storage_service

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.get("/{bucket}/{name}")
def get_object(bucket: str, name: str) -> FileResponse:
    """Serve an audio object by its public URL."""
    storage = get_storage_service()
    if bucket != storage.bucket:
        raise HTTPException(status_code=404, detail="Bucket not found")
    try:
        path = storage.local_path(name)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail="Object not found") from None
    return FileResponse(path, media_type=storage.media_type(name))
