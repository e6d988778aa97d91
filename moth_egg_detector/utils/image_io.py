import base64
from io import BytesIO

from PIL import Image

from moth_egg_detector.core.errors import GatewayError, ImageDecodeError


def load_image_from_bytes(image_bytes: bytes, max_bytes: int):
    if not image_bytes:
        raise GatewayError('MISSING_IMAGE', 'Missing image upload (field name: image).', status_code=400)
    if len(image_bytes) > max_bytes:
        raise GatewayError('IMAGE_TOO_LARGE', f'Image too large. Max {max_bytes} bytes.', status_code=413)

    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
    except Exception as exc:
        raise ImageDecodeError() from exc

    if image.mode != 'RGB':
        image = image.convert('RGB')
    return image


def encode_base64(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode('ascii')


def to_data_uri(image: Image.Image, image_format: str = 'PNG') -> str:
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    subtype = image_format.lower()
    return f'data:image/{subtype};base64,{encode_base64(buffer.getvalue())}'
