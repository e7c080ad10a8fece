from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Optional

from aiobotocore.session import get_session
from botocore.exceptions import ClientError

from config import s3_cfg
from config.s3_cfg import S3DriverConfig
from drivers.driver_base_drv import StorageDriver, FileStat
from drivers.s3.s3_meta_drv import to_file_stat
from drivers.stream_drv import ByteStream, Range, WriteSource, iter_source
from utils import logging_ut
from utils.errors_ut import NotFound, StreamUnavailable, error_code, is_not_found
from utils.path_ut import join_key, normalize_root, strip_root

logger = logging_ut.get_logger("s3_driver")


class S3Driver(StorageDriver):
    """
    S3-compatible driver (AWS, Ceph, MinIO, TOS, R2).

    Keys live under an optional root prefix. S3 has no folders: keys ending
    with "/" are folder markers made by other tools and are never listed.
    """

    def __init__(self, cfg: Optional[S3DriverConfig] = None, session=None):
        self.cfg = cfg or S3DriverConfig.from_options()
        self.bucket = self.cfg.bucket
        self.root = normalize_root(self.cfg.root)
        self.session = session or get_session()

    @asynccontextmanager
    async def _client(self):
        """Context manager for S3 client."""
        async with self.session.create_client(
            's3',
            region_name=self.cfg.region,
            endpoint_url=self.cfg.endpoint,
            aws_access_key_id=self.cfg.key,
            aws_secret_access_key=self.cfg.secret
        ) as client:
            yield client

    def _key(self, rel_path: str) -> str:
        """rel path -> full object key under root."""
        return join_key(self.root, rel_path)

    def _object_key(self, rel_path: str) -> str:
        """Like _key, but the path must name an object, not the root itself."""
        key = self._key(rel_path)
        if key == self.root:
            raise ValueError(f"Path resolves to the root, not an object: {rel_path!r}")
        return key

    def _list_prefix(self, prefix: str) -> str:
        key = self._key(prefix)
        if not key:
            return ""
        # Root itself: list "root/..." only, not "rootX/...".
        # Caller's trailing "/" means "this folder", keep it.
        if key == self.root or prefix.replace("\\", "/").rstrip().endswith("/"):
            return key + "/"
        return key

    async def init(self) -> None:
        """Check connection and bucket existence."""
        logger.info(f"Initializing S3 Driver: {self.cfg.endpoint or 'aws'} / {self.bucket} / root={self.root!r}")
        try:
            async with self._client() as client:
                # Check if bucket exists via HeadBucket
                await client.head_bucket(Bucket=self.bucket)
                logger.info("S3 Bucket exists.")
        except ClientError as e:
            code = error_code(e)
            if code in ("404", "NoSuchBucket"):
                logger.warning(f"Bucket {self.bucket} not found. Trying to create...")
                try:
                    async with self._client() as client:
                        await client.create_bucket(Bucket=self.bucket)
                        logger.info("Bucket created successfully.")
                except ClientError as create_err:
                    raise ConnectionError(f"Failed to create bucket: {create_err}") from create_err
            elif code == "403":
                raise PermissionError(f"Access denied to bucket {self.bucket}") from e
            else:
                raise ConnectionError(f"S3 Connection failed: {e}") from e

    async def read(self, rel_path: str, range: Optional[Range] = None) -> ByteStream:
        key = self._object_key(rel_path)

        kwargs = {'Bucket': self.bucket, 'Key': key}
        header = range.to_header() if range else None
        if header:
            kwargs['Range'] = header

        logger.debug(f"GET {key} range={header}")
        async with AsyncExitStack() as stack:
            client = await stack.enter_async_context(self._client())
            try:
                response = await client.get_object(**kwargs)
            except ClientError as e:
                if is_not_found(e):
                    raise NotFound(f"S3 key not found: {key}") from e
                raise

            body = response.get('Body')
            if body is None or not hasattr(body, 'iter_chunks'):
                raise StreamUnavailable(f"No stream returned for file {rel_path!r}")
            stack.callback(body.close)

            # Hand client + body over to the stream, it closes them
            return ByteStream(
                body.iter_chunks(chunk_size=s3_cfg.CHUNK_SIZE),
                close=stack.pop_all().aclose,
            )

    async def stat(self, rel_path: str) -> FileStat:
        key = self._object_key(rel_path)
        try:
            async with self._client() as client:
                response = await client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if is_not_found(e):
                raise NotFound(f"S3 Object not found: {key}") from e
            raise
        return to_file_stat(rel_path, response)

    async def write(self, rel_path: str, stream: WriteSource, content_type: Optional[str] = None) -> None:
        """
        Single PutObject for small content, multipart above CHUNK_SIZE.
        At most one part is held in memory.
        """
        key = self._object_key(rel_path)
        chunk_size = s3_cfg.CHUNK_SIZE
        extra = {'ContentType': content_type} if content_type else {}

        async with self._client() as client:
            upload_id = None
            parts = []
            buffer = bytearray()

            async def _upload_part(data: bytes) -> None:
                part_number = len(parts) + 1
                part = await client.upload_part(
                    Bucket=self.bucket, Key=key, PartNumber=part_number,
                    UploadId=upload_id, Body=data
                )
                parts.append({'PartNumber': part_number, 'ETag': part['ETag']})

            try:
                async for chunk in iter_source(stream, chunk_size):
                    buffer.extend(chunk)
                    while len(buffer) >= chunk_size:
                        if upload_id is None:
                            mp = await client.create_multipart_upload(Bucket=self.bucket, Key=key, **extra)
                            upload_id = mp['UploadId']
                            logger.debug(f"Multipart upload started: {key}")
                        await _upload_part(bytes(buffer[:chunk_size]))
                        del buffer[:chunk_size]

                if upload_id is None:
                    logger.debug(f"PUT {key} ({len(buffer)} bytes)")
                    await client.put_object(Bucket=self.bucket, Key=key, Body=bytes(buffer), **extra)
                    return

                # Upload remaining
                if buffer:
                    await _upload_part(bytes(buffer))

                await client.complete_multipart_upload(
                    Bucket=self.bucket, Key=key, UploadId=upload_id,
                    MultipartUpload={'Parts': parts}
                )
                logger.debug(f"Multipart upload done: {key} ({len(parts)} parts)")

            except BaseException:
                # Cancellation too, or the upload stays open on the bucket
                if upload_id:
                    await client.abort_multipart_upload(Bucket=self.bucket, Key=key, UploadId=upload_id)
                raise

    async def copy(self, src: str, dest: str) -> None:
        src_key = self._object_key(src)
        dst_key = self._object_key(dest)

        logger.debug(f"COPY {src_key} -> {dst_key}")
        async with self._client() as client:
            copy_source = {'Bucket': self.bucket, 'Key': src_key}
            await client.copy_object(
                Bucket=self.bucket, Key=dst_key, CopySource=copy_source,
                MetadataDirective='COPY'
            )

    async def delete(self, rel_path: str) -> None:
        key = self._object_key(rel_path)

        logger.debug(f"DELETE {key}")
        async with self._client() as client:
            await client.delete_object(Bucket=self.bucket, Key=key)

    async def list(self, prefix: str = "") -> AsyncIterator[str]:
        """
        Walk ListObjectsV2 pages, yield rel paths in backend order.
        """
        key_prefix = self._list_prefix(prefix)
        root_prefix = f"{self.root}/" if self.root else ""

        async with self._client() as client:
            token = None
            while True:
                kwargs = {'Bucket': self.bucket, 'Prefix': key_prefix, 'MaxKeys': s3_cfg.LIST_PAGE_SIZE}
                if token:
                    kwargs['ContinuationToken'] = token

                page = await client.list_objects_v2(**kwargs)

                for obj in page.get('Contents', []):
                    key = obj.get('Key')
                    if not key or key.endswith('/'):
                        continue
                    # Some backends ignore Prefix
                    if not key.startswith(root_prefix):
                        continue
                    yield strip_root(self.root, key)

                token = page.get('NextContinuationToken')
                if not token:
                    break
