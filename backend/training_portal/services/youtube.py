"""
YouTube video reference normalisation.
"""

import re
from urllib.parse import urlparse, parse_qs

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")


def extract_youtube_id(value: str) -> str:
    """
    Reduce a YouTube URL (``watch?v=``, ``youtu.be/``, ``/embed/``) to the
    bare 11-character video id. Anything unrecognised comes back trimmed.
    """
    if not value:
        return value
    trimmed = value.strip()
    if VIDEO_ID_PATTERN.match(trimmed):
        return trimmed

    parsed = urlparse(trimmed)
    host = parsed.hostname or ""
    segments = [part for part in parsed.path.split("/") if part]

    if "youtu.be" in host and segments:
        if VIDEO_ID_PATTERN.match(segments[-1]):
            return segments[-1]

    if "youtube.com" in host:
        for candidate in parse_qs(parsed.query).get("v", []):
            if VIDEO_ID_PATTERN.match(candidate):
                return candidate
        if "embed" in segments:
            idx = segments.index("embed")
            if idx + 1 < len(segments) and VIDEO_ID_PATTERN.match(segments[idx + 1]):
                return segments[idx + 1]

    return trimmed
