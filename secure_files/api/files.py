from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import StreamingResponse

from secure_files.api.deps import (
    get_current_user_id,
    get_deletion_handler,
    get_download_resolver,
    get_file_registry,
    get_settings,
    get_upload_handler,
    oauth2_scheme,
)
from secure_files.core.config import Settings
from secure_files.schemas.common import StandardResponse
from secure_files.schemas.file import FileSummary
from secure_files.services.access import DeletionHandler, Download, DownloadResolver
from secure_files.services.registry import FileRegistry
from secure_files.services.storage import iter_file
from secure_files.services.uploads import UploadHandler

router = APIRouter()


def _stream(download: Download) -> StreamingResponse:
    return StreamingResponse(
        iter_file(download.handle),
        media_type=download.media_type,
        headers=download.headers,
    )


# ============================================================================
# UPLOAD
# ============================================================================

@router.post(
    "/upload",
    response_model=StandardResponse[FileSummary],
    status_code=status.HTTP_201_CREATED,
)
def upload_file(
    file: Optional[List[UploadFile]] = File(None),
    privacy: Optional[str] = Query("public", description="public | private"),
    user_id: int = Depends(get_current_user_id),
    uploads: UploadHandler = Depends(get_upload_handler),
    settings: Settings = Depends(get_settings),
):
    """
    Upload a single file (multipart field "file").

    - Size limited by MAX_FILE_SIZE_MB
    - Content type must be in ALLOWED_MIME
    - Private files get a share link
    """
    record = uploads.handle(file or [], privacy, user_id)
    return StandardResponse(
        success=True,
        message="Uploaded",
        data=FileSummary.from_record(record, settings),
    )


# ============================================================================
# LISTINGS
# ============================================================================

@router.get("/public-files", response_model=StandardResponse[List[FileSummary]])
def list_public_files(
    registry: FileRegistry = Depends(get_file_registry),
    settings: Settings = Depends(get_settings),
):
    """Public files of every user, newest first"""
    files = [FileSummary.from_record(f, settings) for f in registry.list_public()]
    return StandardResponse(success=True, message=f"{len(files)} file(s)", data=files)


@router.get("/my-files", response_model=StandardResponse[List[FileSummary]])
def list_my_files(
    user_id: int = Depends(get_current_user_id),
    registry: FileRegistry = Depends(get_file_registry),
    settings: Settings = Depends(get_settings),
):
    """Caller's own files (public and private), newest first"""
    files = [FileSummary.from_record(f, settings) for f in registry.list_by_owner(user_id)]
    return StandardResponse(success=True, message=f"{len(files)} file(s)", data=files)


# ============================================================================
# DOWNLOAD
# ============================================================================

@router.get("/files/share/{share_id}/download")
def download_shared_file(
    share_id: str,
    resolver: DownloadResolver = Depends(get_download_resolver),
):
    """
    Download a private file through its share link; no login needed.
    """
    return _stream(resolver.resolve_by_share(share_id))


@router.get("/files/{file_id}/download")
def download_file(
    file_id: int,
    token: Optional[str] = Depends(oauth2_scheme),
    resolver: DownloadResolver = Depends(get_download_resolver),
):
    """
    Download by id.

    - public file: anyone
    - private file: owner's bearer token only (others use the share link)
    """
    return _stream(resolver.resolve_by_id(file_id, token))


# ============================================================================
# DELETE
# ============================================================================

@router.delete("/files/{file_id}", response_model=StandardResponse)
def delete_file(
    file_id: int,
    user_id: int = Depends(get_current_user_id),
    deletions: DeletionHandler = Depends(get_deletion_handler),
):
    """
    Delete a file (owner only): content on disk, then metadata.
    """
    deletions.delete(file_id, user_id)
    return StandardResponse(success=True, message="Deleted", data={"id": file_id})
