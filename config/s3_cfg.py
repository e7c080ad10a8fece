import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from config.config import get_env_int

# Region used when neither options nor env give one.
DEFAULT_REGION = "us-east-1"

# Smallest part S3 Multipart accepts (except the last one).
MIN_PART_SIZE = 5 * 1024 * 1024

# Chunk size for uploads/downloads, also the multipart part size.
CHUNK_SIZE = get_env_int("S3_CHUNK_SIZE", MIN_PART_SIZE, minimum=MIN_PART_SIZE)

# ListObjectsV2 page size, the S3 maximum.
LIST_PAGE_SIZE = 1000


def _pick(options: Mapping[str, Any], name: str, env: str) -> Optional[str]:
    # Empty strings count as "not given", same for options and env
    return options.get(name) or os.getenv(env) or None


@dataclass(frozen=True)
class S3DriverConfig:
    """
    Connection settings for one S3Driver. Built once, never changed.
    """
    bucket: str
    root: str = ""
    # None -> botocore default AWS endpoint
    endpoint: Optional[str] = None
    region: str = DEFAULT_REGION
    # None -> botocore credential chain (env, profile, instance role)
    key: Optional[str] = None
    secret: Optional[str] = None

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **overrides: Any) -> "S3DriverConfig":
        """
        Resolve driver options against the process environment.

        This is the only place S3 env variables are read: explicit options
        win, then S3_* env (or .env), then built-in defaults.

        Raises:
            ValueError: no bucket anywhere.
        """
        opts = dict(options or {})
        opts.update({k: v for k, v in overrides.items() if v is not None})

        bucket = _pick(opts, "bucket", "S3_BUCKET_NAME")
        if not bucket:
            raise ValueError("Bucket name required (option 'bucket' or S3_BUCKET_NAME)")

        return cls(
            bucket=bucket,
            root=_pick(opts, "root", "S3_ROOT") or "",
            endpoint=_pick(opts, "endpoint", "S3_ENDPOINT_URL"),
            region=_pick(opts, "region", "S3_REGION_NAME") or DEFAULT_REGION,
            key=_pick(opts, "key", "S3_ACCESS_KEY_ID"),
            secret=_pick(opts, "secret", "S3_SECRET_ACCESS_KEY"),
        )

    def __repr__(self) -> str:
        # Keep the secret out of logs
        return (
            f"S3DriverConfig(bucket={self.bucket!r}, root={self.root!r}, "
            f"endpoint={self.endpoint!r}, region={self.region!r})"
        )
