"""Signed audio fetch endpoint.

Twilio fetches hotline audio here when it reaches a ``<Play>`` verb. The
``token`` query parameter is the signature issued by ``AudioUrlSigner``.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from hotline.core.config import settings
from hotline.services.storage import AudioUrlSigner, get_audio_url_signer, resolve_object_path
from hotline.services.telephony.exceptions import StorageError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{bucket}/{object_name}")
def serve_audio(
    bucket: str,
    object_name: str,
    token: str = Query(..., min_length=1),
    signer: AudioUrlSigner = Depends(get_audio_url_signer),
):
    """Serve a stored audio object to the holder of a valid signed URL."""
    try:
        signer.verify(bucket, object_name, token)
        path = resolve_object_path(settings.STORAGE_DIR, bucket, object_name)
    except StorageError as exc:
        logger.warning("Rejected audio fetch for %s/%s: %s", bucket, object_name, exc)
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    if not path.is_file():
        raise HTTPException(status_code=404, detail="Audio not found")

    return FileResponse(path)
