import os
from pathlib import Path

from config.config import get_env_int

# Local dev default; APP_STORAGE_FS_ROOT (env or .env) overrides it
DEFAULT_FS_ROOT = "/tmp/objdrive_data"

FS_ROOT = str(Path(os.getenv("APP_STORAGE_FS_ROOT") or DEFAULT_FS_ROOT).resolve())

# Read/write chunk for local files, 1MB unless FS_CHUNK_SIZE says otherwise
CHUNK_SIZE = get_env_int("FS_CHUNK_SIZE", 1024 * 1024)
