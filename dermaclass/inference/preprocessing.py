"""
Preprocessing functions turning caller images into the model's input tensor.
"""
import logging
from io import BytesIO

import numpy as np
import torchvision.transforms.functional as TF
from PIL import Image

from .config import InputConfig
from .exceptions import PreprocessingError

logger = logging.getLogger("dermaclass.inference")

INTERPOLATION_MODE_MAP = {
    "bilinear": TF.InterpolationMode.BILINEAR,
    "bicubic": TF.InterpolationMode.BICUBIC,
    "nearest": TF.InterpolationMode.NEAREST,
    "box": TF.InterpolationMode.BOX,
}


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decodes image bytes into a PIL Image."""
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
        return image
    except Exception as e:
        logger.error(f"Failed to decode image: {e}")
        raise PreprocessingError("Invalid image data") from e


def to_pil_image(image: bytes | Image.Image | np.ndarray) -> Image.Image:
    """Normalises the supported input forms to a PIL Image."""
    if isinstance(image, Image.Image):
        return image
    if isinstance(image, (bytes, bytearray)):
        return decode_image(bytes(image))
    if isinstance(image, np.ndarray):
        if image.dtype != np.uint8 or image.ndim not in (2, 3) or (image.ndim == 3 and image.shape[2] not in (3, 4)):
            raise PreprocessingError(
                f"Unsupported array image: dtype={image.dtype}, shape={image.shape}. "
                "Expected uint8 (H, W), (H, W, 3) or (H, W, 4)."
            )
        return Image.fromarray(image)
    raise PreprocessingError(f"Unsupported image type: {type(image)}. Expected bytes, PIL.Image or numpy.ndarray.")


def _ensure_rgb(image: Image.Image) -> Image.Image:
    if image.mode == "RGB":
        return image
    try:
        return image.convert("RGB")
    except Exception as e:
        logger.error(f"Cannot convert image mode '{image.mode}' to RGB: {e}")
        raise PreprocessingError(f"Unsupported pixel format: {image.mode}") from e


def resize_image(image: Image.Image, size: int, interpolation: str = "bilinear") -> Image.Image:
    """Stretches the image to a size x size square; aspect ratio is not preserved."""
    mode = INTERPOLATION_MODE_MAP.get(interpolation.lower(), TF.InterpolationMode.BILINEAR)
    try:
        return TF.resize(image, [size, size], interpolation=mode, antialias=True)
    except Exception as e:
        logger.error(f"Failed to resize image of size {image.size} to {size}x{size}: {e}")
        raise PreprocessingError(f"Could not resize image: {e}") from e


def _extract_pixels_bulk(image: Image.Image) -> np.ndarray:
    return np.asarray(image, dtype=np.uint8)


def _extract_pixels_per_pixel(image: Image.Image) -> np.ndarray:
    width, height = image.size
    pixels = np.empty((height, width, 3), dtype=np.uint8)
    access = image.load()
    for y in range(height):
        for x in range(width):
            pixels[y, x] = access[x, y][:3]
    return pixels


def image_to_tensor(image: Image.Image) -> np.ndarray:
    """
    Converts an image into a float32 array of shape (H, W, 3).

    Pixels are read in row-major order, alpha is discarded and each R, G, B
    byte is divided by 255 so values lie in [0.0, 1.0].

    If bulk extraction fails the pixels are read one at a time instead; both
    paths feed the same normalization, so the resulting values are identical.
    """
    image = _ensure_rgb(image)
    width, height = image.size
    try:
        pixels = _extract_pixels_bulk(image)
        if pixels.shape != (height, width, 3):
            raise ValueError(f"unexpected pixel buffer shape {pixels.shape}")
    except Exception as bulk_error:
        logger.warning(f"Bulk pixel extraction failed ({bulk_error}); falling back to per-pixel reads.")
        try:
            pixels = _extract_pixels_per_pixel(image)
        except Exception as e:
            logger.error(f"Per-pixel extraction failed: {e}")
            raise PreprocessingError(f"Could not extract pixels: {e}") from e

    return pixels.astype(np.float32) / np.float32(255.0)


def preprocess_image(
    image: bytes | Image.Image | np.ndarray,
    input_cfg: InputConfig,
) -> np.ndarray:
    """Decodes (if needed), resizes and converts an image to a [S, S, 3] float32 tensor."""
    pil_image = _ensure_rgb(to_pil_image(image))
    size = input_cfg.image_size
    resized = resize_image(pil_image, size, input_cfg.image_interpolation)
    tensor = image_to_tensor(resized)

    if tensor.shape != (size, size, 3):
        logger.error(f"Preprocessed tensor has shape {tensor.shape}, expected {(size, size, 3)}.")
        raise PreprocessingError(f"Preprocessed tensor has shape {tensor.shape}, expected {(size, size, 3)}")

    return tensor
