from typing import Any, Optional

from config import config
from drivers.driver_base_drv import StorageDriver
from drivers.fs.fs_driver_drv import FSDriver
# S3 driver imported inside function: aiobotocore is heavy to load for fs-only use


def get_driver(kind: Optional[str] = None, **options: Any) -> StorageDriver:
    """
    Factory creating driver instance based on kind (default config.DRIVER_KIND).

    Options:
        fs: root
        s3: bucket, root, endpoint, region, key, secret
    """
    kind = (kind or config.DRIVER_KIND).lower()

    if kind == "fs":
        return FSDriver(root=options.get("root"))

    elif kind == "s3":
        from config.s3_cfg import S3DriverConfig
        from drivers.s3.s3_driver_drv import S3Driver
        return S3Driver(S3DriverConfig.from_options(options))

    raise ValueError(f"Unknown driver kind: {kind}")
