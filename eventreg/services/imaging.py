"""QR image re-encoding with Pillow."""

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from eventreg.errors import InvalidImageError


def make_thumbnail(content: bytes, size: int) -> tuple[bytes, int]:
    """Resize an image to a size x size square and re-encode it as PNG.

    Nearest-neighbour resampling keeps QR modules sharp.

    Args:
        content: Raw bytes of any format Pillow can decode.
        size: Edge length of the output square, in pixels.

    Returns:
        The PNG bytes and their length.

    Raises:
        InvalidImageError: If the bytes cannot be decoded as an image.
    """
    if not content:
        raise InvalidImageError("The uploaded image is empty")

    try:
        with Image.open(BytesIO(content)) as image:
            image.load()
            if image.mode not in ("1", "L", "RGB", "RGBA"):
                image = image.convert("RGBA")
            resized = image.resize((size, size), Image.Resampling.NEAREST)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InvalidImageError("The uploaded file is not a readable image") from e

    buffer = BytesIO()
    resized.save(buffer, format="PNG")
    data = buffer.getvalue()
    return data, len(data)
