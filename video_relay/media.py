import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.IGNORECASE | re.DOTALL)

DEFAULT_IMAGE_NAME = "input-reference"


@dataclass
class ReferenceImage:
    data: bytes
    mime_type: str
    filename: str


def reference_image_name(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return secure_filename(value.strip()) or DEFAULT_IMAGE_NAME
    return DEFAULT_IMAGE_NAME


def parse_reference_image(value: Any, filename: str = DEFAULT_IMAGE_NAME) -> Optional[ReferenceImage]:
    """Decode a data URL (or bare base64 string) into image bytes.

    Returns None for anything that does not decode to a non-empty payload.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()

    mime_type = "image/png"
    payload = text
    match = DATA_URL_RE.match(text)
    if match:
        mime_type = match.group(1) or mime_type
        payload = match.group(2)

    try:
        data = base64.b64decode(payload)
    except (binascii.Error, ValueError) as e:
        logger.warning("[parse_reference_image] Could not decode reference image: %s", e)
        return None
    if not data:
        return None
    return ReferenceImage(data=data, mime_type=mime_type, filename=filename)
