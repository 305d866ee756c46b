"""
Video API Endpoints

Upload, listing, detail, deletion and playback of video jobs. Every route
works on behalf of the authenticated principal and only ever sees that
principal's organization.
"""

import mimetypes
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from fastapi.responses import FileResponse, RedirectResponse, StreamingResponse

from constants import HTTPStatus
from dependencies import get_current_principal, get_ingress_gateway, get_video_service
from domain.value_objects import Principal
from exceptions import ValidationError
from schemas import (
    MessageResponse,
    VideoDetailResponse,
    VideoListResponse,
    VideoResponse,
    VideoUploadResponse,
)
from services.ingress import IngressGateway, UploadDescriptor
from services.video_service import VideoService
from utils import handle_api_errors

router = APIRouter()

CHUNK_SIZE = 64 * 1024


def parse_range_header(range_header: str, file_size: int) -> tuple[int, int]:
    """
    Parse a single "bytes=start-end" range, clamped to the file.

    Suffix ranges ("bytes=-500") address the last N bytes.
    """
    range_spec = range_header.strip().lower().replace("bytes=", "", 1).split(",")[0].strip()
    start_str, _, end_str = range_spec.partition("-")

    try:
        if not start_str:
            length = int(end_str)
            start = max(0, file_size - length)
            end = file_size - 1
        else:
            start = int(start_str)
            end = int(end_str) if end_str else file_size - 1
    except ValueError:
        raise ValidationError(f"Invalid Range header: {range_header}")

    start = max(0, min(start, file_size - 1))
    end = max(start, min(end, file_size - 1))
    return start, end


def create_range_response(file_path: Path, range_header: str, media_type: str) -> StreamingResponse:
    """Serve part of a file for an HTTP Range request so players can seek."""
    file_size = file_path.stat().st_size
    start, end = parse_range_header(range_header, file_size)
    content_length = end - start + 1

    def iter_file():
        with open(file_path, 'rb') as f:
            f.seek(start)
            remaining = content_length
            while remaining > 0:
                data = f.read(min(CHUNK_SIZE, remaining))
                if not data:
                    break
                remaining -= len(data)
                yield data

    return StreamingResponse(
        iter_file(),
        status_code=HTTPStatus.PARTIAL_CONTENT,
        media_type=media_type,
        headers={
            "Content-Range": f"bytes {start}-{end}/{file_size}",
            "Content-Length": str(content_length),
            "Accept-Ranges": "bytes",
        },
    )


@router.post("/videos/upload", response_model=VideoUploadResponse, status_code=HTTPStatus.CREATED)
@handle_api_errors("Video upload")
async def upload_video(
    video: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_current_principal),
    gateway: IngressGateway = Depends(get_ingress_gateway),
):
    """
    Accept a video upload (multipart field "video") and start processing.

    The response is returned once the job record exists; progress arrives
    over the WebSocket.
    """
    if video is None:
        raise ValidationError("No video file provided")

    # Reject oversized uploads without pulling more than the limit into memory
    if video.size is not None:
        gateway.check_size(video.size)
    content = await video.read(gateway.max_upload_bytes + 1)
    descriptor = UploadDescriptor(
        filename=video.filename or "",
        mime_type=video.content_type or "application/octet-stream",
        content=content,
    )
    job = await gateway.submit(principal, descriptor)
    return {
        "message": "Video uploaded successfully",
        "video": VideoResponse.model_validate(job),
    }


@router.get("/videos", response_model=VideoListResponse)
@handle_api_errors("List videos")
def list_videos(
    status: Optional[str] = Query(None),
    sensitivity_status: Optional[str] = Query(None, alias="sensitivityStatus"),
    search: Optional[str] = Query(None),
    principal: Principal = Depends(get_current_principal),
    service: VideoService = Depends(get_video_service),
):
    """List the organization's videos, newest first."""
    jobs = service.list(principal, status=status, sensitivity_status=sensitivity_status, search=search)
    return {"videos": [VideoResponse.model_validate(job) for job in jobs]}


@router.get("/videos/{video_id}", response_model=VideoDetailResponse)
@handle_api_errors("Get video")
def get_video(
    video_id: str,
    principal: Principal = Depends(get_current_principal),
    service: VideoService = Depends(get_video_service),
):
    job = service.get(principal, video_id)
    return {"video": VideoResponse.model_validate(job)}


@router.get("/videos/{video_id}/stream")
@handle_api_errors("Stream video")
def stream_video(
    video_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    service: VideoService = Depends(get_video_service),
):
    """
    Play a completed video.

    Locally stored videos are served with HTTP Range support; videos in
    object storage redirect to a short-lived signed URL.
    """
    target = service.stream_target(principal, video_id)

    if target.url:
        return RedirectResponse(target.url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    media_type = target.mime_type or mimetypes.guess_type(str(target.path))[0] or "video/mp4"
    range_header = request.headers.get("range")
    if range_header:
        return create_range_response(target.path, range_header, media_type)

    return FileResponse(
        str(target.path),
        media_type=media_type,
        headers={"Accept-Ranges": "bytes"},
    )


@router.delete("/videos/{video_id}", response_model=MessageResponse)
@handle_api_errors("Delete video")
async def delete_video(
    video_id: str,
    principal: Principal = Depends(get_current_principal),
    service: VideoService = Depends(get_video_service),
):
    await service.delete(principal, video_id)
    return {"message": "Video deleted successfully"}
