"""Time-limited fetch URLs for audio assets.

A signed URL points at the storage endpoint of this service and carries an
HS256 JWT whose ``url`` claim names the object (``<bucket>/<object name>``)
and whose ``exp`` bounds its lifetime. Twilio fetches the URL during
``<Play>``; the storage endpoint verifies the token before serving the file.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote

import jwt

from hotline.core.config import settings
from hotline.services.telephony.exceptions import StorageError

logger = logging.getLogger(__name__)

MIN_URL_TTL_SECONDS = 3600


class AudioUrlSigner:
    def __init__(
        self,
        signing_key: str,
        base_url: str,
        bucket: str,
        algorithm: str = "HS256",
    ) -> None:
        if not signing_key:
            raise StorageError("STORAGE_SIGNING_KEY is required")
        self._signing_key = signing_key
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._algorithm = algorithm

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_name(self, storage_path: str) -> str:
        """Object name within the bucket: the last segment of the storage path."""
        name = storage_path.rstrip("/").split("/")[-1] if storage_path else ""
        if not name or name in (".", ".."):
            raise StorageError(f"Invalid storage path: {storage_path!r}")
        return name

    def sign(self, storage_path: str, ttl_seconds: int = MIN_URL_TTL_SECONDS) -> str:
        """Return a fetch URL for ``storage_path`` valid for ``ttl_seconds``.

        Raises:
            StorageError: If the path is invalid, the TTL is under an hour, or
                the token cannot be produced.
        """
        if ttl_seconds < MIN_URL_TTL_SECONDS:
            raise StorageError(f"Signed URL TTL must be at least {MIN_URL_TTL_SECONDS}s, got {ttl_seconds}s")

        name = self.object_name(storage_path)
        now = datetime.now(timezone.utc)
        payload = {
            "url": f"{self._bucket}/{name}",
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
        }
        try:
            token = jwt.encode(payload, self._signing_key, algorithm=self._algorithm)
        except jwt.PyJWTError as exc:
            raise StorageError(f"Failed to sign {storage_path}: {exc}") from exc

        return (
            f"{self._base_url}{settings.API_V1_PREFIX}/storage/"
            f"{quote(self._bucket)}/{quote(name)}?token={token}"
        )

    def verify(self, bucket: str, object_name: str, token: str) -> None:
        """Check that ``token`` grants access to ``bucket/object_name``.

        Raises:
            StorageError: If the token is expired, malformed, or for another object.
        """
        try:
            payload = jwt.decode(token, self._signing_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise StorageError("Signed URL has expired") from exc
        except jwt.PyJWTError as exc:
            raise StorageError("Invalid signed URL token") from exc

        if payload.get("url") != f"{bucket}/{object_name}":
            raise StorageError("Signed URL token does not match the requested object")


def resolve_object_path(storage_dir: str, bucket: str, object_name: str) -> Path:
    """Filesystem location of a stored object, confined to ``storage_dir``."""
    root = Path(storage_dir).resolve()
    path = (root / bucket / object_name).resolve()
    if root not in path.parents:
        raise StorageError(f"Object path escapes storage root: {bucket}/{object_name}")
    return path


def get_audio_url_signer() -> AudioUrlSigner:
    return AudioUrlSigner(
        signing_key=settings.STORAGE_SIGNING_KEY,
        base_url=settings.PUBLIC_BASE_URL,
        bucket=settings.STORAGE_BUCKET,
        algorithm=settings.STORAGE_SIGNING_ALGORITHM,
    )
