"""
Deep-link builders for upstream images and video streams.

These never contact the upstream. The consuming client fetches the bytes
directly, so stream links carry the shared credential as ``api_key``.
"""

from typing import Optional
from urllib.parse import quote, urlencode

from shared.errors import ValidationError
from service_gateway.app.domain.models import TranscodeParams
from service_gateway.app.domain.params import clean_params


def _segment(value: str) -> str:
    return quote(str(value), safe="")


def _require_item_id(item_id: Optional[str]) -> str:
    if item_id is None or not str(item_id).strip():
        raise ValidationError("Item id is required")
    return str(item_id)


def build_image_url(base_url: str, item_id: str, image_kind: str,
                    width: Optional[int] = None, height: Optional[int] = None,
                    quality: Optional[int] = 90) -> str:
    """URL of an item image, e.g. ``{base}/Items/{id}/Images/Primary?width=300``."""
    item_id = _require_item_id(item_id)
    url = f"{base_url.rstrip('/')}/Items/{_segment(item_id)}/Images/{_segment(image_kind)}"

    query = urlencode(clean_params({"width": width, "height": height, "quality": quality}))
    if query:
        url += f"?{query}"
    return url


def build_stream_url(base_url: str, api_key: str, item_id: str,
                     params: Optional[TranscodeParams] = None) -> str:
    """URL of a transcoded video stream for ``item_id``."""
    item_id = _require_item_id(item_id)
    params = params or TranscodeParams()

    query = urlencode([
        ("VideoCodec", params.video_codec),
        ("AudioCodec", params.audio_codec),
        ("MaxWidth", params.max_width),
        ("MaxHeight", params.max_height),
        ("VideoBitRate", params.video_bitrate),
        ("AudioBitRate", params.audio_bitrate),
        ("api_key", api_key),
    ])
    return (
        f"{base_url.rstrip('/')}/Videos/{_segment(item_id)}"
        f"/stream.{_segment(params.container)}?{query}"
    )
