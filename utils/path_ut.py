import re
from pathlib import Path

_SLASHES = re.compile(r"/{2,}")


def normalize_path(rel_path: str) -> str:
    """
    Normalize rel path API:
    - replace "\" -> "/"
    - collapse "//" runs
    - remove leading and trailing "/"
    - Trim

    Args:
        rel_path: raw path from caller.

    Returns:
        valid rel path ("." and ".." segments untouched).
    """
    if not rel_path:
        return ""

    clean = rel_path.replace("\\", "/").strip()
    clean = _SLASHES.sub("/", clean)
    return clean.strip("/")


def join_key(root: str, rel_path: str) -> str:
    """
    Join root prefix and rel path into an object key.

    "." and ".." are resolved against the root, which acts as the anchor:
    climbing above it is refused. An empty path or "." gives the root itself.

    Args:
        root: normalized root prefix ("" for the bucket top).
        rel_path: rel path from caller.

    Returns:
        object key, without leading/trailing "/".

    Raises:
        PermissionError: path climbs out of root.
    """
    parts = []
    for part in normalize_path(rel_path).split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                raise PermissionError(f"Path traversal detected: {rel_path}")
            parts.pop()
            continue
        parts.append(part)

    key = "/".join(parts)
    if not root:
        return key
    if not key:
        return root
    return f"{root}/{key}"


def normalize_root(root: str) -> str:
    """Root prefix from config: "/uploads/./media/" -> "uploads/media"."""
    return join_key("", root or "")


def strip_root(root: str, key: str) -> str:
    """Object key -> path relative to root (inverse of join_key)."""
    if not root:
        return key
    return key[len(root) + 1:]


def safe_join(base: str, rel_path: str) -> str:
    """
    Safe joins root and rel paths, blocks Path Traversal.

    Args:
        base: abs path to storage.
        rel_path: rel path from client.

    Returns:
        abs path.

    Raises:
        PermissionError: abs path is out of base.
    """
    base_path = Path(base).resolve()
    clean_rel = normalize_path(rel_path)

    # Use pathlib to join and resolve
    final_path = (base_path / clean_rel).resolve()

    # Check if the final path is still inside base_path
    if final_path != base_path and base_path not in final_path.parents:
        raise PermissionError(f"Path traversal detected: {rel_path}")

    return str(final_path)
