import base64
import binascii
import mimetypes
from pathlib import Path


DEFAULT_IMAGE_MIME = "image/png"


def to_data_uri(payload: str, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    return f"data:{mime_type};base64,{payload}"


def split_data_uri(value: str) -> tuple[str, str]:
    """Return ``(mime_type, base64_payload)`` for a ``data:<mime>;base64,<payload>`` string."""
    if not isinstance(value, str) or "," not in value:
        raise ValueError("Image must be a base64 data URI (data:<mime-type>;base64,<payload>).")

    header, payload = value.split(",", 1)
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Image must be a base64 data URI (data:<mime-type>;base64,<payload>).")

    mime_type = header[len("data:") :].split(";", 1)[0].strip()
    payload = payload.strip()
    if not payload:
        raise ValueError("Image data URI has an empty payload.")
    return mime_type or DEFAULT_IMAGE_MIME, payload


def decode_data_uri(value: str) -> tuple[str, bytes]:
    mime_type, payload = split_data_uri(value)
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Image data URI is not valid base64: {exc}") from exc


def encode_image_data(data: bytes | str) -> str:
    # The SDK hands back raw bytes; already-encoded strings pass through.
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


def file_to_data_uri(path: str | Path) -> str:
    file_path = Path(path).expanduser()
    mime_type, _ = mimetypes.guess_type(file_path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {file_path.name}")
    return to_data_uri(encode_image_data(file_path.read_bytes()), mime_type)
