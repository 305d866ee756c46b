import asyncio

import boto3
import pytest
from botocore.stub import Stubber

from exceptions import StorageError
from services.storage import LocalStorageProvider, S3StorageProvider
from utils.video_metadata import parse_ffprobe_output


def test_parse_ffprobe_output_reads_video_stream_and_format():
    data = {
        "streams": [
            {"codec_type": "audio", "codec_name": "aac"},
            {"codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720},
        ],
        "format": {"duration": "31.5", "bit_rate": "2500000", "format_name": "mov,mp4,m4a,3gp,3g2,mj2"},
    }

    assert parse_ffprobe_output(data) == {
        "duration": 31.5,
        "width": 1280,
        "height": 720,
        "codec": "h264",
        "bitrate": 2500000,
        "format": "mov",
    }


def test_parse_ffprobe_output_tolerates_missing_fields():
    assert parse_ffprobe_output({}) == {
        "duration": None, "width": None, "height": None, "codec": None, "bitrate": None, "format": None,
    }


def test_local_transfer_stores_file_without_metadata_when_probe_fails(tmp_path, monkeypatch):
    monkeypatch.setattr("services.storage.get_video_metadata", lambda path: None)
    provider = LocalStorageProvider(tmp_path)

    result = asyncio.run(provider.transfer(b"video-bytes", "job.mp4"))

    assert result.reference == "job.mp4"
    assert result.size_bytes == len(b"video-bytes")
    assert result.duration_seconds is None
    assert (tmp_path / "job.mp4").read_bytes() == b"video-bytes"
    assert provider.local_path("job.mp4") == (tmp_path / "job.mp4").resolve()


def test_local_transfer_records_probed_metadata(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "services.storage.get_video_metadata",
        lambda path: {"duration": 4.0, "width": 640, "height": 360, "codec": "vp9", "bitrate": 1000, "format": "webm"},
    )
    result = asyncio.run(LocalStorageProvider(tmp_path).transfer(b"x", "job.webm"))

    assert (result.width, result.height, result.codec, result.container_format) == (640, 360, "vp9", "webm")


def test_local_delete_is_idempotent(tmp_path, monkeypatch):
    monkeypatch.setattr("services.storage.get_video_metadata", lambda path: None)
    provider = LocalStorageProvider(tmp_path)
    asyncio.run(provider.transfer(b"x", "job.mp4"))

    asyncio.run(provider.delete("job.mp4"))
    asyncio.run(provider.delete("job.mp4"))

    assert provider.local_path("job.mp4") is None


def test_local_provider_rejects_paths_outside_media_root(tmp_path):
    with pytest.raises(StorageError):
        LocalStorageProvider(tmp_path / "media").local_path("../secrets.txt")


def _s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


def test_s3_transfer_puts_object_under_prefix(monkeypatch):
    monkeypatch.setattr("services.storage.get_video_metadata", lambda path: None)
    client = _s3_client()
    provider = S3StorageProvider("media-bucket", key_prefix="sentinel-videos", client=client)

    with Stubber(client) as stubber:
        stubber.add_response(
            "put_object",
            {"ETag": '"abc"'},
            {"Bucket": "media-bucket", "Key": "sentinel-videos/job.mp4", "Body": b"bytes"},
        )
        result = asyncio.run(provider.transfer(b"bytes", "job.mp4"))
        stubber.assert_no_pending_responses()

    assert result.reference == "sentinel-videos/job.mp4"
    assert result.url == "s3://media-bucket/sentinel-videos/job.mp4"


def test_s3_transfer_error_becomes_storage_error(monkeypatch):
    monkeypatch.setattr("services.storage.get_video_metadata", lambda path: None)
    client = _s3_client()
    provider = S3StorageProvider("media-bucket", client=client)

    with Stubber(client) as stubber:
        stubber.add_client_error("put_object", service_error_code="NoSuchBucket")
        with pytest.raises(StorageError):
            asyncio.run(provider.transfer(b"bytes", "job.mp4"))


def test_s3_signed_url_targets_object():
    provider = S3StorageProvider("media-bucket", client=_s3_client(), presign_expire_seconds=60)

    url = provider.signed_url("sentinel-videos/job.mp4")

    assert "media-bucket" in url
    assert "sentinel-videos/job.mp4" in url
    assert "Expires=60" in url or "X-Amz-Expires=60" in url
