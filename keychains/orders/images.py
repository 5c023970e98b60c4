"""
Order photo compression
Uses Pillow to downscale customer photos and re-encode them as JPEG data URIs,
so a photo can be stored inline on the order row.
"""
import base64
import binascii
import io
import logging
import re
from typing import Optional, Tuple

from django.conf import settings
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger('keychains.orders')

DATA_URI_PATTERN = re.compile(
    r'^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^;,]+)*;base64,(?P<data>.*)$',
    re.DOTALL,
)

JPEG_DATA_URI_PREFIX = 'data:image/jpeg;base64,'


class ImageProcessingError(Exception):
    """Raised when an order photo cannot be accepted"""


def scaled_dimensions(width: int, height: int, max_size: int) -> Tuple[int, int]:
    """
    Fit (width, height) inside max_size on the longer edge, keeping aspect ratio.

    Landscape images wider than the limit are scaled by width; anything else
    taller than the limit is scaled by height. Smaller images keep their size.
    """
    if width > height and width > max_size:
        height = height * max_size / width
        width = max_size
    elif height > max_size:
        width = width * max_size / height
        height = max_size
    return max(1, int(width)), max(1, int(height))


def _flatten_to_rgb(img: Image.Image) -> Image.Image:
    """JPEG has no alpha channel: paint transparent pixels white"""
    if img.mode in ('RGBA', 'LA') or (img.mode == 'P' and 'transparency' in img.info):
        rgba = img.convert('RGBA')
        background = Image.new('RGB', rgba.size, 'white')
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img


def _max_upload_bytes() -> int:
    return settings.ORDER_IMAGE_MAX_UPLOAD_BYTES


def _check_size(size: int):
    max_bytes = _max_upload_bytes()
    if size > max_bytes:
        raise ImageProcessingError(f'Image must be smaller than {max_bytes // (1024 * 1024)}MB')


def _check_pixels(width: int, height: int):
    if width * height > settings.ORDER_IMAGE_MAX_PIXELS:
        logger.warning(f"Rejected {width}x{height} image over the pixel limit")
        raise ImageProcessingError('Image has too many pixels')


def compress_image_bytes(raw: bytes, max_size: Optional[int] = None, quality: Optional[int] = None) -> str:
    """
    Downscale and re-encode raw image bytes.

    Returns:
        Base64-encoded JPEG image as data URL string
    """
    if max_size is None:
        max_size = settings.ORDER_IMAGE_MAX_DIMENSION
    if quality is None:
        quality = settings.ORDER_IMAGE_JPEG_QUALITY

    _check_size(len(raw))

    try:
        img = Image.open(io.BytesIO(raw))
    except Image.DecompressionBombError as e:
        raise ImageProcessingError('Image has too many pixels') from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError('Could not load the image') from e

    # Image.open only reads the header; refuse huge canvases before decoding them
    _check_pixels(img.width, img.height)

    try:
        img.load()
    except Image.DecompressionBombError as e:
        raise ImageProcessingError('Image has too many pixels') from e
    except (OSError, ValueError) as e:
        raise ImageProcessingError('Could not load the image') from e

    # Honour camera orientation before measuring
    img = ImageOps.exif_transpose(img)

    original_size = img.size
    new_size = scaled_dimensions(img.width, img.height, max_size)
    if new_size != original_size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    img = _flatten_to_rgb(img)

    buffer = io.BytesIO()
    img.save(buffer, format='JPEG', quality=quality, optimize=True)
    encoded = base64.b64encode(buffer.getvalue()).decode('ascii')

    logger.debug(
        f"Compressed image {original_size[0]}x{original_size[1]} -> {new_size[0]}x{new_size[1]}, "
        f"{len(raw)} -> {buffer.tell()} bytes"
    )
    return f'{JPEG_DATA_URI_PREFIX}{encoded}'


def decode_data_uri(data_uri: str) -> bytes:
    """Extract the raw bytes of a base64 image data URI"""
    match = DATA_URI_PATTERN.match(data_uri.strip())
    if not match:
        raise ImageProcessingError('Image must be a base64 data URI')

    mime = match.group('mime') or ''
    if not mime.startswith('image/'):
        raise ImageProcessingError('Please upload an image')

    try:
        return base64.b64decode(match.group('data'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageProcessingError('Image data is not valid base64') from e


def compress_data_uri(data_uri: str) -> str:
    """Compress an image that arrived as a data URI"""
    return compress_image_bytes(decode_data_uri(data_uri))


def compress_uploaded_image(uploaded_file) -> str:
    """Compress an image that arrived as a multipart upload"""
    content_type = getattr(uploaded_file, 'content_type', None) or ''
    if content_type and not content_type.startswith('image/'):
        raise ImageProcessingError('Please upload an image')

    size = getattr(uploaded_file, 'size', None)
    if size is not None:
        _check_size(size)

    return compress_image_bytes(uploaded_file.read())
