import re
import base64
import binascii
import requests
from errors import InputError

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')

# Leading magic bytes of the raster formats Gemini accepts inline
_IMAGE_SIGNATURES = [
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
]


def clamp(value, low, high):
    return max(low, min(high, value))


def wrap_degrees(value):
    """Map any angle onto [0, 360)"""
    return value % 360


def to_snake(key):
    """Convert a camelCase wire key (focalLength) to its snake_case field name"""
    return _CAMEL_BOUNDARY.sub('_', key).lower()


def to_camel(key):
    head, *rest = key.split('_')
    return head + ''.join(part.title() for part in rest)


def camelize(data):
    """Recursively rename dict keys to camelCase for the wire format"""
    if isinstance(data, dict):
        return {to_camel(k): camelize(v) for k, v in data.items()}
    if isinstance(data, (list, tuple)):
        return [camelize(v) for v in data]
    return data


def join_options(values, default_text):
    """Join selected tokens for the prompt, falling back to a default label"""
    return ", ".join(values) if values else default_text


def sniff_mime_type(image_bytes, default='image/png'):
    for signature, mime_type in _IMAGE_SIGNATURES:
        if image_bytes.startswith(signature):
            return mime_type
    if image_bytes[:4] == b'RIFF' and image_bytes[8:12] == b'WEBP':
        return 'image/webp'
    return default


def decode_data_url(data_url):
    """Split a base64 data URL into (bytes, mime_type).

    Bare base64 strings without a ``data:`` header are accepted too; their mime
    type is sniffed from the decoded bytes.
    """
    if not isinstance(data_url, str):
        raise InputError("Image must be a base64 string or data URL")
    mime_type = None
    payload = data_url
    if data_url.startswith('data:'):
        header, _, payload = data_url.partition(',')
        mime_type = header[5:].split(';')[0] or None

    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InputError("Image payload is not valid base64")

    if not image_bytes:
        raise InputError("Image payload is empty")
    return image_bytes, mime_type or sniff_mime_type(image_bytes)


def encode_base64(image_bytes):
    return base64.b64encode(image_bytes).decode('utf-8')


def fetch_image(image_url, timeout=30):
    """Fetch a reference image from a URL and return (bytes, mime_type)"""
    print(f"[fetch_image] Fetching image from URL: {image_url[:100]}...")
    try:
        response = requests.get(image_url, timeout=timeout)
    except requests.RequestException as e:
        raise InputError(f"Failed to fetch image: {e}")

    if response.status_code != 200:
        print(f"[fetch_image] Failed to fetch image: {response.status_code}")
        raise InputError(f"Failed to fetch image: {response.status_code}")

    content_type = response.headers.get('Content-Type', '').split(';')[0].strip()
    if not content_type.startswith('image/'):
        content_type = sniff_mime_type(response.content)
    return response.content, content_type
