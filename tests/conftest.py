"""Shared fixtures: an in-memory S3 stand-in for the aiobotocore client."""

import hashlib
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from config.s3_cfg import S3DriverConfig
from drivers.s3.s3_driver_drv import S3Driver


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeBody:
    def __init__(self, data: bytes):
        self._data = data
        self.closed = False

    async def iter_chunks(self, chunk_size: int = 1024):
        for i in range(0, len(self._data), chunk_size):
            yield self._data[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeS3Client:
    """
    Object store in a dict. Only what the driver calls.
    Set `fail[<method>] = exc` to make a call raise.
    """

    def __init__(self):
        self.objects: Dict[str, dict] = {}
        self.calls: List[tuple] = []
        self.uploads: Dict[str, dict] = {}
        self.fail: Dict[str, Exception] = {}
        self.bodies: List[FakeBody] = []
        self.buckets = {"b"}

    def _record(self, name: str, kwargs: dict):
        self.calls.append((name, kwargs))
        if name in self.fail:
            raise self.fail[name]

    def calls_to(self, name: str) -> List[dict]:
        return [kw for n, kw in self.calls if n == name]

    def _store(self, key: str, data: bytes, content_type: Optional[str] = None):
        self.objects[key] = {
            "data": data,
            "ContentType": content_type or "binary/octet-stream",
            "LastModified": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
            "ETag": f'"{hashlib.md5(data).hexdigest()}"',
        }

    @staticmethod
    def _slice(data: bytes, header: Optional[str]) -> bytes:
        if not header:
            return data
        start, end = header[len("bytes="):].split("-")
        if start == "":
            return data[-int(end):]
        if end == "":
            return data[int(start):]
        return data[int(start):int(end) + 1]

    async def get_object(self, Bucket, Key, Range=None):
        self._record("get_object", dict(Bucket=Bucket, Key=Key, Range=Range))
        if Key not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        data = self._slice(self.objects[Key]["data"], Range)
        body = FakeBody(data)
        self.bodies.append(body)
        return {"Body": body, "ContentLength": len(data)}

    async def head_object(self, Bucket, Key):
        self._record("head_object", dict(Bucket=Bucket, Key=Key))
        if Key not in self.objects:
            # HEAD responses carry no error body, only the status
            raise client_error("404", "HeadObject")
        obj = self.objects[Key]
        return {
            "ContentLength": len(obj["data"]),
            "LastModified": obj["LastModified"],
            "ETag": obj["ETag"],
            "ContentType": obj["ContentType"],
        }

    async def put_object(self, Bucket, Key, Body=b"", ContentType=None):
        self._record("put_object", dict(Bucket=Bucket, Key=Key, Body=Body, ContentType=ContentType))
        self._store(Key, bytes(Body), ContentType)
        return {"ETag": self.objects[Key]["ETag"]}

    async def create_multipart_upload(self, Bucket, Key, ContentType=None):
        self._record("create_multipart_upload", dict(Bucket=Bucket, Key=Key, ContentType=ContentType))
        upload_id = f"upload-{len(self.uploads) + 1}"
        self.uploads[upload_id] = {"Key": Key, "parts": {}, "ContentType": ContentType, "state": "open"}
        return {"UploadId": upload_id}

    async def upload_part(self, Bucket, Key, PartNumber, UploadId, Body):
        self._record("upload_part", dict(Bucket=Bucket, Key=Key, PartNumber=PartNumber, UploadId=UploadId))
        self.uploads[UploadId]["parts"][PartNumber] = bytes(Body)
        return {"ETag": f'"part-{PartNumber}"'}

    async def complete_multipart_upload(self, Bucket, Key, UploadId, MultipartUpload):
        self._record("complete_multipart_upload", dict(Bucket=Bucket, Key=Key, UploadId=UploadId,
                                                       MultipartUpload=MultipartUpload))
        upload = self.uploads[UploadId]
        numbers = [p["PartNumber"] for p in MultipartUpload["Parts"]]
        data = b"".join(upload["parts"][n] for n in numbers)
        upload["state"] = "completed"
        self._store(Key, data, upload["ContentType"])
        return {}

    async def abort_multipart_upload(self, Bucket, Key, UploadId):
        self._record("abort_multipart_upload", dict(Bucket=Bucket, Key=Key, UploadId=UploadId))
        self.uploads[UploadId]["state"] = "aborted"
        return {}

    async def copy_object(self, Bucket, Key, CopySource, MetadataDirective="COPY"):
        self._record("copy_object", dict(Bucket=Bucket, Key=Key, CopySource=CopySource,
                                         MetadataDirective=MetadataDirective))
        src = self.objects.get(CopySource["Key"])
        if src is None:
            raise client_error("NoSuchKey", "CopyObject")
        self.objects[Key] = dict(src)
        return {}

    async def delete_object(self, Bucket, Key):
        self._record("delete_object", dict(Bucket=Bucket, Key=Key))
        self.objects.pop(Key, None)
        return {}

    async def list_objects_v2(self, Bucket, Prefix="", MaxKeys=1000, ContinuationToken=None):
        self._record("list_objects_v2", dict(Bucket=Bucket, Prefix=Prefix, MaxKeys=MaxKeys,
                                             ContinuationToken=ContinuationToken))
        keys = sorted(k for k in self.objects if k.startswith(Prefix))
        offset = int(ContinuationToken) if ContinuationToken else 0
        page = keys[offset:offset + MaxKeys]
        result = {"KeyCount": len(page), "IsTruncated": offset + MaxKeys < len(keys)}
        if page:
            result["Contents"] = [{"Key": k, "Size": len(self.objects[k]["data"])} for k in page]
        if result["IsTruncated"]:
            result["NextContinuationToken"] = str(offset + MaxKeys)
        return result

    async def head_bucket(self, Bucket):
        self._record("head_bucket", dict(Bucket=Bucket))
        if Bucket not in self.buckets:
            raise client_error("404", "HeadBucket")
        return {}

    async def create_bucket(self, Bucket):
        self._record("create_bucket", dict(Bucket=Bucket))
        self.buckets.add(Bucket)
        return {}


class FakeSession:
    """Stands in for aiobotocore's AioSession."""

    def __init__(self, client: FakeS3Client):
        self.client = client
        self.client_kwargs: List[dict] = []
        self.open_clients = 0

    @asynccontextmanager
    async def _open(self):
        self.open_clients += 1
        try:
            yield self.client
        finally:
            self.open_clients -= 1

    def create_client(self, service_name, **kwargs):
        assert service_name == "s3"
        self.client_kwargs.append(kwargs)
        return self._open()


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def session(fake_s3) -> FakeSession:
    return FakeSession(fake_s3)


@pytest.fixture
def driver(session) -> S3Driver:
    return S3Driver(S3DriverConfig(bucket="b", root="uploads"), session=session)


@pytest.fixture
def bare_driver(session) -> S3Driver:
    return S3Driver(S3DriverConfig(bucket="b"), session=session)
