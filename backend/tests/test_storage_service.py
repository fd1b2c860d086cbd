"""Tests for the S3 storage wrapper and audio sniffing"""
import io
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from app.services.storage_service import StorageService, delete_object_best_effort
from app.utils.audio_validator import detect_audio_format, has_audio_extension, validate_audio_header


@pytest.fixture
def s3():
    client = Mock()
    client.generate_presigned_url.side_effect = lambda op, Params, ExpiresIn: f"https://s3.test/{op}/{ExpiresIn}"
    return client


@pytest.fixture
def service(s3):
    return StorageService(client=s3, bucket="audio")


class TestPresignedUrls:
    """URL lifetimes follow settings"""

    def test_put_url(self, service, s3):
        assert service.issue_put_url("p/1-a.mp3", "audio/mpeg") == "https://s3.test/put_object/900"
        params = s3.generate_presigned_url.call_args.kwargs["Params"]
        assert params == {"Bucket": "audio", "Key": "p/1-a.mp3", "ContentType": "audio/mpeg"}

    def test_get_url(self, service):
        assert service.issue_get_url("p/1-a.mp3") == "https://s3.test/get_object/3600"

    def test_part_urls(self, service, s3):
        urls = service.issue_part_urls("p/1-a.wav", "up-1", [1, 2, 3])
        assert [u["part_number"] for u in urls] == [1, 2, 3]
        assert all(u["url"] == "https://s3.test/upload_part/900" for u in urls)
        assert s3.generate_presigned_url.call_args.kwargs["Params"]["PartNumber"] == 3


class TestMultipart:
    """Multipart lifecycle"""

    def test_open_session(self, service, s3):
        s3.create_multipart_upload.return_value = {"UploadId": "up-1"}
        assert service.open_multipart_session("p/1-a.wav", "audio/wav") == "up-1"

    def test_open_session_without_id(self, service, s3):
        s3.create_multipart_upload.return_value = {}
        with pytest.raises(RuntimeError):
            service.open_multipart_session("p/1-a.wav")

    def test_complete_sorts_parts(self, service, s3):
        service.complete_multipart_session("k", "up-1", [
            {"part_number": 2, "etag": "b"}, {"part_number": 1, "etag": "a"},
        ])
        upload = s3.complete_multipart_upload.call_args.kwargs["MultipartUpload"]
        assert upload == {"Parts": [{"PartNumber": 1, "ETag": "a"}, {"PartNumber": 2, "ETag": "b"}]}

    def test_abort(self, service, s3):
        service.abort_multipart_session("k", "up-1")
        s3.abort_multipart_upload.assert_called_once_with(Bucket="audio", Key="k", UploadId="up-1")


class TestObjects:
    """Reads, deletes and bucket setup"""

    def test_read_header_uses_range(self, service, s3):
        s3.get_object.return_value = {"Body": io.BytesIO(b"ID3abc")}
        assert service.read_header("k", 64) == b"ID3abc"
        assert s3.get_object.call_args.kwargs["Range"] == "bytes=0-63"

    def test_best_effort_delete(self, service, s3):
        assert delete_object_best_effort(service, "k") is True
        s3.delete_object.side_effect = RuntimeError("down")
        assert delete_object_best_effort(service, "k") is False

    def test_ensure_bucket_creates_missing(self, service, s3):
        s3.head_bucket.side_effect = ClientError(
            {"Error": {"Code": "404"}, "ResponseMetadata": {"HTTPStatusCode": 404}}, "HeadBucket"
        )
        service.ensure_bucket()
        s3.create_bucket.assert_called_once_with(Bucket="audio")

    def test_ensure_bucket_propagates_other_errors(self, service, s3):
        s3.head_bucket.side_effect = ClientError(
            {"Error": {"Code": "403"}, "ResponseMetadata": {"HTTPStatusCode": 403}}, "HeadBucket"
        )
        with pytest.raises(ClientError):
            service.ensure_bucket()


class TestAudioValidator:
    """Magic-byte sniffing"""

    @pytest.mark.parametrize("header,expected", [
        (b"ID3\x04" + b"\x00" * 10, "MP3 (ID3)"),
        (b"\xff\xfb\x90\x00", "MP3 (MPEG)"),
        (b"RIFF\x00\x00\x00\x00WAVE", "WAV"),
        (b"fLaC\x00\x00\x00\x22", "FLAC"),
        (b"\x00\x00\x00\x20ftypM4A ", "M4A/MP4"),
    ])
    def test_detect(self, header, expected):
        assert detect_audio_format(header) == expected

    def test_too_short(self):
        assert validate_audio_header(b"ID")[0] is False

    def test_not_audio(self):
        valid, message = validate_audio_header(b"%PDF-1.7")
        assert valid is False
        assert "valid audio" in message

    def test_extensions(self):
        assert has_audio_extension("Mix.WAV")
        assert not has_audio_extension("mix.txt")
