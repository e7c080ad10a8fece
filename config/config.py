import os
from dotenv import load_dotenv

# Load .env automatically (looks in current dir and parents)
load_dotenv()

def get_env_bool(key: str, default: bool = False) -> bool:
    val = os.getenv(key, str(default)).lower()
    return val in ('true', '1', 'yes', 'on')

def get_env_int(key: str, default: int, minimum: int = 1) -> int:
    """Int from env. Values below `minimum` are a config error, not clamped."""
    val = int(os.getenv(key) or default)
    if val < minimum:
        raise ValueError(f"{key}={val} is below the minimum of {minimum}")
    return val

# Driver type: "fs" (local dir) or "s3" (any S3-compatible store)
DRIVER_KIND = os.getenv("DRIVER_KIND", "fs")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

VERSION = os.getenv("VERSION", "1.0.0")
