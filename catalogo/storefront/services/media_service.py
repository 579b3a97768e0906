"""
Product media on the image/video CDN (Cloudinary signed uploads).

The server only signs requests and deletes assets; files are uploaded
directly to the CDN with a short-lived signature.
"""
from __future__ import annotations

import hashlib
import io
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import requests
from django.conf import settings
from PIL import Image

logger = logging.getLogger('storefront.media')

API_BASE = "https://api.cloudinary.com/v1_1"
RESOURCE_TYPES = ("image", "video")

MAX_VIDEO_MB = 20
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/webm", "video/quicktime")

REQUEST_TIMEOUT = 30


class MediaError(Exception):
    """CDN request failed or the CDN is not configured."""


@dataclass
class SignedUpload:
    cloud_name: str
    api_key: str
    timestamp: int
    signature: str
    folder: str
    overwrite: bool = True

    def form_fields(self) -> Dict[str, str]:
        return {
            "api_key": self.api_key,
            "timestamp": str(self.timestamp),
            "signature": self.signature,
            "folder": self.folder,
            "overwrite": "true" if self.overwrite else "false",
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "timestamp": self.timestamp,
            "signature": self.signature,
            "folder": self.folder,
            "overwrite": self.overwrite,
        }


@dataclass
class BatchResult:
    """Summary of a batch where each unit may fail on its own."""

    created: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    items: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created": self.created,
            "failed": self.failed,
            "errors": list(self.errors),
            "items": list(self.items),
        }


def _credentials() -> Tuple[str, str, str]:
    cloud_name = getattr(settings, "CLOUDINARY_CLOUD_NAME", "")
    api_key = getattr(settings, "CLOUDINARY_API_KEY", "")
    api_secret = getattr(settings, "CLOUDINARY_API_SECRET", "")
    if not (cloud_name and api_key and api_secret):
        raise MediaError("El servicio de imágenes no está configurado.")
    return cloud_name, api_key, api_secret


def api_sign_request(params: Dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary request signature: SHA-1 over the alphabetically sorted
    ``key=value`` pairs joined with ``&``, followed by the API secret.
    Empty values are not signed.
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if params[key] is not None and params[key] != ""
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def sign_upload(tenant, kind: str = "products") -> SignedUpload:
    """Signature for a direct upload into the tenant's media folder."""
    cloud_name, api_key, api_secret = _credentials()
    timestamp = int(time.time())
    folder = tenant.media_folder(kind)
    signature = api_sign_request(
        {"folder": folder, "overwrite": "true", "timestamp": timestamp},
        api_secret,
    )
    logger.info("Signed %s upload for store %s", kind, tenant.store_id)
    return SignedUpload(
        cloud_name=cloud_name,
        api_key=api_key,
        timestamp=timestamp,
        signature=signature,
        folder=folder,
    )


def _error_message(response) -> str:
    try:
        return response.json().get("error", {}).get("message") or response.text
    except ValueError:
        return response.text


def upload_file(tenant, fileobj, resource_type: str = "image") -> Dict[str, Any]:
    """
    Upload one file and return its media reference
    (``{url, public_id, width, height, bytes}``).
    """
    if resource_type not in RESOURCE_TYPES:
        raise MediaError(f"Tipo de recurso no soportado: {resource_type}")
    signed = sign_upload(tenant, "videos" if resource_type == "video" else "products")
    endpoint = f"{API_BASE}/{signed.cloud_name}/{resource_type}/upload"

    try:
        response = requests.post(
            endpoint,
            data=signed.form_fields(),
            files={"file": fileobj},
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        raise MediaError(f"Error de red subiendo archivo: {exc}") from exc

    if not response.ok:
        raise MediaError(f"La subida falló: {_error_message(response)}")

    data = response.json()
    ref = {
        "url": data.get("secure_url"),
        "public_id": data.get("public_id"),
        "width": data.get("width"),
        "height": data.get("height"),
        "bytes": data.get("bytes"),
    }
    if resource_type == "video" and data.get("duration") is not None:
        ref["duration_sec"] = data.get("duration")
    return ref


def upload_batch(
    tenant,
    files: Iterable,
    resource_type: str = "image",
    progress: Optional[Callable[[int, int], None]] = None,
) -> BatchResult:
    """
    Upload files one at a time, reporting ``progress(done, total)`` after
    each file. A failed file is recorded and the batch continues.
    """
    files = list(files)
    result = BatchResult()
    for index, fileobj in enumerate(files, start=1):
        name = getattr(fileobj, "name", f"archivo {index}")
        try:
            if resource_type == "video":
                error = validate_video(getattr(fileobj, "content_type", ""), getattr(fileobj, "size", 0))
                if error:
                    raise MediaError(error)
            else:
                fileobj = compress_image(fileobj)
            result.items.append(upload_file(tenant, fileobj, resource_type))
            result.created += 1
        except MediaError as exc:
            logger.warning("Upload of %s failed for store %s: %s", name, tenant.store_id, exc)
            result.failed += 1
            result.errors.append(f"{name}: {exc}")
        if progress is not None:
            progress(index, len(files))
    return result


def destroy_asset(tenant, public_id: str, resource_type: str = "image") -> Dict[str, Any]:
    """
    Delete an asset from the CDN. Only assets under the tenant's folders may
    be deleted.
    """
    if not public_id:
        raise MediaError("publicId requerido")
    if resource_type not in RESOURCE_TYPES:
        raise MediaError(f"Tipo de recurso no soportado: {resource_type}")
    if not public_id.startswith(f"stores/{tenant.store_id}/"):
        raise MediaError("El recurso no pertenece a esta tienda.")

    cloud_name, api_key, api_secret = _credentials()
    timestamp = int(time.time())
    params = {"public_id": public_id, "timestamp": timestamp}
    data = {
        **params,
        "api_key": api_key,
        "signature": api_sign_request(params, api_secret),
    }
    started = time.monotonic()
    try:
        response = requests.post(
            f"{API_BASE}/{cloud_name}/{resource_type}/destroy",
            data=data,
            timeout=REQUEST_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("CDN destroy error for %s: %s", public_id, exc)
        raise MediaError(f"No se pudo borrar el recurso: {exc}") from exc

    if not response.ok:
        message = _error_message(response)
        logger.error("CDN destroy rejected for %s: %s", public_id, message)
        raise MediaError(f"No se pudo borrar el recurso: {message}")

    result = response.json()
    logger.info(
        "Deleted %s %s for store %s in %.0f ms (%s)",
        resource_type,
        public_id,
        tenant.store_id,
        (time.monotonic() - started) * 1000,
        result.get("result"),
    )
    return result


def release_media(tenant, assets: Iterable[Tuple[str, str]]) -> BatchResult:
    """
    Best-effort removal of ``(public_id, resource_type)`` pairs. Failures
    are logged and counted, never raised.
    """
    result = BatchResult()
    for public_id, resource_type in assets:
        try:
            destroy_asset(tenant, public_id, resource_type)
            result.created += 1
        except MediaError as exc:
            logger.warning("Could not release %s %s: %s", resource_type, public_id, exc)
            result.failed += 1
            result.errors.append(f"{public_id}: {exc}")
    return result


def cdn_image_url(
    url: str,
    w: int = 600,
    h: Optional[int] = None,
    crop: str = "limit",
    q: str = "auto",
) -> str:
    """
    Delivery URL with automatic format/quality and a size limit. URLs that
    are not CDN upload URLs are returned unchanged.
    """
    if not url:
        return url
    parts = url.split("/upload/")
    if len(parts) != 2:
        return url
    transforms = [
        "f_auto",
        f"q_{q}",
        "dpr_auto",
        "c_fill" if crop == "fill" else "c_limit",
        f"w_{w}",
    ]
    if h:
        transforms.append(f"h_{h}")
    return f"{parts[0]}/upload/{','.join(transforms)}/{parts[1]}"


def validate_video(content_type: str, size: int) -> str:
    """Error message for an unacceptable video, or ``""``."""
    if content_type not in ALLOWED_VIDEO_TYPES:
        return "Formato inválido. Usa MP4 / WebM (o MOV)."
    mb = (size or 0) / (1024 * 1024)
    if mb > MAX_VIDEO_MB:
        return f"El video pesa {mb:.1f}MB. Máximo permitido: {MAX_VIDEO_MB}MB."
    return ""


def compress_image(fileobj, max_side: int = 1600, quality: int = 80):
    """
    Re-encode an image as JPEG no larger than ``max_side`` on either edge.
    Returns a named in-memory file; unreadable images raise ``MediaError``.
    """
    try:
        fileobj.seek(0)
    except (AttributeError, OSError):
        pass
    try:
        with Image.open(fileobj) as img:
            if img.mode in ("RGBA", "LA", "P"):
                if img.mode == "P":
                    img = img.convert("RGBA")
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[-1] if img.mode in ("RGBA", "LA") else None)
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")
            img.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as exc:
        raise MediaError(f"Imagen inválida: {exc}") from exc

    buffer.seek(0)
    base_name = (getattr(fileobj, "name", "") or "image").rsplit("/", 1)[-1].rsplit(".", 1)[0]
    buffer.name = f"{base_name or 'image'}.jpg"
    return buffer
