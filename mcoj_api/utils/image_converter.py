"""
Image processing helpers built on Pillow.
Gallery uploads are resized to the slot dimensions; the standalone optimizer
converts to WebP to cut file size.
"""
import io
import logging
from typing import Optional, Tuple
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

# WebP conversion settings
DEFAULT_WEBP_QUALITY = 85  # Balance between quality and file size (0-100)
DEFAULT_WEBP_METHOD = 6    # Compression method (0-6, higher = better compression but slower)
MAX_DIMENSION = 3840       # Maximum width or height before downscaling

DEFAULT_JPEG_QUALITY = 85


def fit_inside(size: Tuple[int, int], box: Tuple[int, int]) -> Tuple[int, int]:
    """
    Scale size to the largest dimensions that fit inside box, keeping the
    aspect ratio. Small images are enlarged.
    """
    width, height = size
    box_width, box_height = box
    scale = min(box_width / width, box_height / height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def resize_for_gallery(image_bytes: bytes, width: int, height: int) -> bytes:
    """
    Resize an uploaded gallery image to fit inside width x height.
    The image keeps its own format (JPEG or PNG).

    Raises:
        UnidentifiedImageError: If the bytes are not a readable image
        OSError: If Pillow fails to decode or encode the image
    """
    image = Image.open(io.BytesIO(image_bytes))
    image_format = image.format or "JPEG"

    new_size = fit_inside(image.size, (width, height))
    logger.info(f"Resizing gallery image from {image.size[0]}x{image.size[1]} to {new_size[0]}x{new_size[1]}")
    resized = image.resize(new_size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    if image_format == "JPEG":
        if resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        resized.save(buffer, format="JPEG", quality=DEFAULT_JPEG_QUALITY, optimize=True)
    else:
        resized.save(buffer, format=image_format, optimize=True)

    return buffer.getvalue()


async def convert_to_webp(
    image_bytes: bytes,
    quality: int = DEFAULT_WEBP_QUALITY,
    method: int = DEFAULT_WEBP_METHOD,
    max_dimension: Optional[int] = MAX_DIMENSION,
    skip_if_webp: bool = True
) -> Tuple[bytes, bool]:
    """
    Convert image bytes to WebP format to reduce file size.

    Args:
        image_bytes: Original image file bytes
        quality: WebP quality (0-100, default: 85)
        method: WebP compression method (0-6, default: 6)
        max_dimension: Maximum width or height before downscaling (None to disable)
        skip_if_webp: If True, return original bytes if already WebP format

    Returns:
        Tuple[bytes, bool]:
            - Converted image bytes (or original if skipped/failed)
            - Whether conversion was successful/skipped (True) or failed (False)
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))

        if skip_if_webp and image.format == 'WEBP':
            logger.debug("Image is already WebP format, skipping conversion")
            return image_bytes, True

        # WebP supports transparency, so palette images keep their alpha channel
        if image.mode == 'P':
            image = image.convert('RGBA')
        elif image.mode not in ('RGB', 'RGBA', 'LA'):
            image = image.convert('RGB')

        if max_dimension:
            width, height = image.size
            if width > max_dimension or height > max_dimension:
                new_width, new_height = fit_inside((width, height), (max_dimension, max_dimension))
                logger.info(
                    f"Downscaling image from {width}x{height} to {new_width}x{new_height} "
                    f"(max dimension: {max_dimension})"
                )
                image = image.resize((new_width, new_height), Image.Resampling.LANCZOS)

        webp_buffer = io.BytesIO()
        save_kwargs = {
            'format': 'WEBP',
            'quality': quality,
            'method': method,
        }
        if quality == 100:
            save_kwargs['lossless'] = True

        image.save(webp_buffer, **save_kwargs)
        webp_bytes = webp_buffer.getvalue()

        original_size = len(image_bytes)
        converted_size = len(webp_bytes)
        reduction = ((original_size - converted_size) / original_size) * 100

        logger.info(
            f"Converted image to WebP: "
            f"{original_size:,} bytes -> {converted_size:,} bytes "
            f"({reduction:.1f}% reduction, quality={quality})"
        )

        return webp_bytes, True

    except UnidentifiedImageError as e:
        logger.warning(f"Cannot identify image format: {str(e)}")
        return image_bytes, False

    except Exception as e:
        logger.error(f"Error converting image to WebP: {str(e)}", exc_info=True)
        return image_bytes, False


def get_image_info(image_bytes: bytes) -> Optional[dict]:
    """
    Get basic information about an image.

    Returns:
        dict: Image information (format, width, height, bytes) or None if unreadable
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        return {
            'format': image.format,
            'width': image.size[0],
            'height': image.size[1],
            'bytes': len(image_bytes)
        }
    except Exception as e:
        logger.debug(f"Error getting image info: {str(e)}")
        return None
