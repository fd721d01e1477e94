"""
Image endpoints.

POST   /image/upload      - upload (write)
GET    /image             - list the caller's images (read)
GET    /image/{id}        - metadata (read)
GET    /image/{id}/file   - raw bytes (public unless STORAGE_PUBLIC_FILE_ACCESS=false)
PATCH  /image/{id}        - partial metadata update (write)
DELETE /image/{id}        - soft delete (delete)

Handlers are plain ``def`` functions: FastAPI runs them in its thread pool,
so the blocking pymongo and filesystem calls underneath never stall the
event loop.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile

from dependencies import get_image_service, require_operation, tenant_scope
from errors import ValidationError
from schemas.dto.requests.image import UpdateImageRequest
from schemas.dto.responses.common import ErrorResponse, SuccessResponse
from schemas.dto.responses.image import ImageListResponse, ImageResponse
from schemas.models.api_key import ApiKeyDoc
from services.image_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ImageService,
    page_count,
)
from shared.permissions import Operation
from shared.validators import parse_tags_csv, parse_tags_json

router = APIRouter(
    prefix="/image",
    tags=["images"],
    responses={
        status: {"model": ErrorResponse} for status in (400, 401, 403, 404)
    },
)


def _read_bounded(upload: UploadFile, max_bytes: int) -> bytes:
    """Read at most max_bytes + 1 bytes so oversized uploads are detectable
    without buffering them whole."""
    return upload.file.read(max_bytes + 1)


@router.post("/upload", status_code=201, response_model=ImageResponse)
def upload_image(
    file: Optional[UploadFile] = File(default=None),
    tags: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    alt: Optional[str] = Form(default=None),
    key: ApiKeyDoc = Depends(require_operation(Operation.UPLOAD)),
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    if file is None:
        raise ValidationError("No file provided", field="file")
    content = _read_bounded(file, service.max_upload_bytes)
    image = service.upload(
        key.app_name,
        key.app_name,
        content,
        file.content_type,
        file.filename,
        tags=parse_tags_json(tags),
        description=description,
        alt=alt,
    )
    return ImageResponse.from_doc(image)


@router.get("", response_model=ImageListResponse)
def list_images(
    page: int = Query(default=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE),
    tags: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    key: ApiKeyDoc = Depends(require_operation(Operation.LIST)),
    service: ImageService = Depends(get_image_service),
) -> ImageListResponse:
    images, total = service.list_images(
        key.app_name,
        page=page,
        limit=limit,
        tags=parse_tags_csv(tags),
        search=search,
    )
    effective_limit = min(limit, MAX_PAGE_SIZE)
    return ImageListResponse(
        images=[ImageResponse.from_doc(image) for image in images],
        total=total,
        page=page,
        limit=effective_limit,
        pages=page_count(total, effective_limit),
    )


@router.get("/{image_id}", response_model=ImageResponse)
def get_image(
    image_id: str,
    key: ApiKeyDoc = Depends(require_operation(Operation.GET_METADATA)),
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    return ImageResponse.from_doc(service.get_by_id(image_id, tenant_scope(key)))


@router.get("/{image_id}/file", response_class=Response)
def get_image_file(
    image_id: str,
    key: Optional[ApiKeyDoc] = Depends(require_operation(Operation.GET_FILE)),
    service: ImageService = Depends(get_image_service),
) -> Response:
    image, content = service.get_file(image_id, tenant_scope(key))
    return Response(content=content, media_type=image.mime_type)


@router.patch("/{image_id}", response_model=ImageResponse)
def update_image(
    image_id: str,
    body: UpdateImageRequest,
    key: ApiKeyDoc = Depends(require_operation(Operation.UPDATE_METADATA)),
    service: ImageService = Depends(get_image_service),
) -> ImageResponse:
    image = service.update_metadata(
        image_id,
        tags=body.tags,
        description=body.description,
        alt=body.alt,
        app_id=tenant_scope(key),
    )
    return ImageResponse.from_doc(image)


@router.delete("/{image_id}", response_model=SuccessResponse)
def delete_image(
    image_id: str,
    key: ApiKeyDoc = Depends(require_operation(Operation.DELETE)),
    service: ImageService = Depends(get_image_service),
) -> SuccessResponse:
    service.delete(image_id, tenant_scope(key))
    return SuccessResponse(success=True)
