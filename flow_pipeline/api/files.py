"""Binary artifact download.

GET /api/v1/files/{key} - Stream a stored file (rendered decks)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from flow_pipeline.api.deps import get_file_storage
from flow_pipeline.services.file_storage import LocalFileStorage

router = APIRouter(prefix="/files", tags=["files"])

_MEDIA_TYPES = {
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}


@router.get("/{key:path}")
async def download_file(
    key: str,
    storage: LocalFileStorage = Depends(get_file_storage),
) -> FileResponse:
    try:
        path = storage.resolve(key)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"File {key} not found")
    return FileResponse(
        path,
        media_type=_MEDIA_TYPES.get(path.suffix, "application/octet-stream"),
        filename=path.name,
    )
