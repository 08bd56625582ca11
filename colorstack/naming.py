"""Naming service: standardized names for every file ColorStack writes.

Names carry the band count and a timestamp so exports of the same picture
can be told apart.
"""

import re
from datetime import datetime
from typing import Optional, Dict


def _get_timestamp() -> str:
    """Local time as YYYYMMDD_HHMMSS."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _sanitize(name: str) -> str:
    """Replace characters that file systems reject with underscores."""
    forbidden = '<>:"/\\|?*'
    for ch in forbidden:
        name = name.replace(ch, "_")
    return name


# Gradio upload temp-file prefix: tmp{random}_ (e.g. tmpq7esd8mm_photo)
_TEMP_PREFIX_RE = re.compile(r"^tmp[a-zA-Z0-9]{4,12}_")


def _strip_temp_prefix(name: str) -> str:
    return _TEMP_PREFIX_RE.sub("", name)


def _base(base_name: str) -> str:
    base = _sanitize(_strip_temp_prefix((base_name or "").strip())).strip()
    return base or "untitled"


def generate_model_filename(
    base_name: str,
    band_count: int,
    extension: str = ".stl",
) -> str:
    """Model file name.

    Format: {base_name}_ColorStack_{N}B_{timestamp}{ext}

    - an empty base_name becomes "untitled"
    """
    return f"{_base(base_name)}_ColorStack_{int(band_count)}B_{_get_timestamp()}{extension}"


def generate_preview_filename(
    base_name: str,
    extension: str = ".png",
) -> str:
    """Preview file name.

    Format: {base_name}_Preview_{timestamp}{ext}
    """
    return f"{_base(base_name)}_Preview_{_get_timestamp()}{extension}"


_TS_PATTERN = r"\d{8}_\d{6}"

_MODEL_RE = re.compile(
    rf"^(.+)_ColorStack_(\d+)B_({_TS_PATTERN})(\.[\w]+)$"
)
_PREVIEW_RE = re.compile(
    rf"^(.+)_Preview_({_TS_PATTERN})(\.[\w]+)$"
)


def parse_filename(filename: str) -> Optional[Dict[str, object]]:
    """Split a standardized file name into its parts.

    Returns a dict with base_name, band_count, timestamp, extension and
    file_type, or None for names not produced by this module.
    """
    if not isinstance(filename, str) or not filename:
        return None

    m = _MODEL_RE.match(filename)
    if m:
        return {
            "base_name": m.group(1),
            "band_count": int(m.group(2)),
            "timestamp": m.group(3),
            "extension": m.group(4),
            "file_type": "model",
        }

    m = _PREVIEW_RE.match(filename)
    if m:
        return {
            "base_name": m.group(1),
            "band_count": None,
            "timestamp": m.group(2),
            "extension": m.group(3),
            "file_type": "preview",
        }

    return None
