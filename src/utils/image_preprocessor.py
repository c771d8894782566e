"""Image preparation for vision-model description of post images.

Post images arrive at whatever size the social platform served: phone
photos are often 4000px on the long side and several megabytes.  Vision
APIs bill by pixel area and reject very large payloads, so images are
downscaled before they are sent.  Small images are left alone; upscaling
adds nothing a vision model can use.
"""

import io

from PIL import Image, UnidentifiedImageError

from src.utils.errors import ImageAnalysisError

# Anthropic and OpenAI both downsample above roughly this size anyway.
_MAX_DIM = 1568


def detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes.

    PNG starts with: 89 50 4E 47 0D 0A 1A 0A
    WEBP starts with: RIFF....WEBP
    GIF starts with: GIF8
    JPEG starts with: FF D8
    """
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:4] == b"GIF8":
        return "image/gif"
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    return "image/jpeg"  # safe fallback, JPEG is the most common upload format


class ImagePreprocessor:
    """Shrinks oversized images before they are sent to a vision model."""

    def __init__(self, max_dim: int = _MAX_DIM) -> None:
        self._max_dim = max_dim

    def prepare_for_vision(self, image_bytes: bytes) -> bytes:
        """Return *image_bytes*, re-encoded as JPEG if it had to be downscaled.

        Raises:
            ImageAnalysisError: If the bytes are not a decodable image.
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise ImageAnalysisError(
                message=f"Unreadable image data: {exc}", provider_name="pillow"
            ) from exc

        resized = self.resize_for_vision(image)
        if resized is image:
            return image_bytes

        buffer = io.BytesIO()
        resized.convert("RGB").save(buffer, format="JPEG", quality=85)
        return buffer.getvalue()

    def resize_for_vision(self, image: Image.Image) -> Image.Image:
        """Downscale so the largest dimension is at most ``max_dim``.

        Preserves aspect ratio.  Returns the same object when no resize is
        needed.
        """
        width, height = image.size
        largest = max(width, height)
        if largest <= self._max_dim:
            return image

        scale = self._max_dim / largest
        new_size = (max(1, int(width * scale)), max(1, int(height * scale)))
        return image.resize(new_size, Image.LANCZOS)
