from __future__ import annotations

import pathlib
import shutil
from typing import Optional

from ..core.config import settings
from ..models.exceptions import StorageException


def _path_for(key: str) -> pathlib.Path:
    base = pathlib.Path(settings.local_storage_dir).resolve()
    dest = (base / key).resolve()
    if base != dest and base not in dest.parents:
        raise StorageException("resolve", key, {"reason": "key escapes storage root"})
    return dest


def put_object(key: str, data: bytes, content_type: str = "application/octet-stream") -> None:
    dest = _path_for(key)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with open(dest, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageException("put", key, {"reason": str(e)})


def get_object(key: str) -> Optional[bytes]:
    src = _path_for(key)
    if not src.exists():
        return None
    return src.read_bytes()


def delete_object(key: str) -> None:
    try:
        _path_for(key).unlink(missing_ok=True)
    except OSError as e:
        raise StorageException("delete", key, {"reason": str(e)})


def delete_prefix(prefix: str) -> None:
    """Remove every object under a key prefix such as `media/<workspace>`."""
    path = _path_for(prefix)
    if not path.is_dir():
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise StorageException("delete", prefix, {"reason": str(e)})


def signed_public_url(key: str, expires_seconds: int = 900) -> str:
    # Local dev: serve via /static/ route
    return f"{settings.service_base_url.rstrip('/')}/static/{key}"
