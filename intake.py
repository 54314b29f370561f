import base64
import re
from dataclasses import dataclass

_DATA_URL = re.compile(r'^data:[^;,]*(;[^,]*)?,')


class NotAnImageError(ValueError):
    """Raised when a selected file is not an image."""

    def __init__(self, name: str, media_type: str):
        self.name = name
        self.media_type = media_type
        super().__init__(f"{name or 'File'} is not an image ({media_type or 'unknown type'})")


@dataclass
class ScanImage:
    name: str
    media_type: str
    data: bytes
    base64: str


def is_image(media_type) -> bool:
    return str(media_type or "").startswith("image/")


def strip_data_url(text: str) -> str:
    """Drop a `data:<type>;base64,` prefix, leaving the payload."""
    return _DATA_URL.sub("", text, count=1)


def read_scan(name: str, media_type: str, data: bytes) -> ScanImage:
    if not is_image(media_type):
        raise NotAnImageError(name, media_type)
    encoded = base64.b64encode(data).decode("ascii")
    return ScanImage(name=name, media_type=media_type, data=data, base64=encoded)


def from_upload(uploaded) -> ScanImage:
    # streamlit UploadedFile
    return read_scan(uploaded.name, uploaded.type, uploaded.getvalue())
