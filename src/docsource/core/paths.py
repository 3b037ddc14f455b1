"""Path derivation for documentation nodes.

Pure helpers: version/section metadata from directory depth, canonical URL
paths, stable node ids and mime detection.
"""

from __future__ import annotations

import hashlib
import logging
import mimetypes
import re
import unicodedata
from typing import Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

SlugifyFn = Callable[[str], str]

NON_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(text: str | None) -> str:
    """Normalize one path segment into a URL-safe slug."""
    if not text:
        return ""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = NON_SLUG_PATTERN.sub("-", normalized.lower())
    return slug.strip("-")


def split_directory(directory: str) -> list[str]:
    """Split a relative POSIX directory into segments. '' and '.' have none."""
    cleaned = directory.replace("\\", "/").strip("/")
    if cleaned in ("", "."):
        return []
    return cleaned.split("/")


def derive_doc_info(directory: str) -> Dict[str, Optional[str]]:
    """
    Derive version and section from a directory relative to the base dir.

    One segment gives a version, two give version and section. Any other depth
    leaves both unset; the node is still created.
    """
    parts = split_directory(directory)
    if len(parts) == 1:
        return {"version": parts[0], "section": None}
    if len(parts) == 2:
        return {"version": parts[0], "section": parts[1]}
    logger.debug("No version/section for directory %r (depth %d)", directory, len(parts))
    return {"version": None, "section": None}


def compute_path(
    directory: str,
    name: str,
    index_names: Iterable[str] = ("index",),
    slugify_fn: SlugifyFn = slugify,
    path_prefix: str | None = None,
    trailing_slash: bool = False,
) -> str:
    """
    Compute the URL path for a file.

    Examples:
        compute_path("v1", "getting-started")  -> "/v1/getting-started"
        compute_path("v1", "index")            -> "/v1"
        compute_path("", "index")              -> "/"
    """
    segments = [slugify_fn(segment) for segment in split_directory(directory)]

    if name not in set(index_names):
        segments.append(slugify_fn(name))

    prefix = (path_prefix or "").strip("/")
    if prefix:
        segments.insert(0, prefix)

    result = ("/" + "/".join(s for s in segments if s)).rstrip("/")
    if trailing_slash:
        result += "/"
    return result or "/"


def create_uid(relative_path: str) -> str:
    """Stable node id: MD5 hex digest of the POSIX relative path."""
    return hashlib.md5(relative_path.encode("utf-8")).hexdigest()


def detect_mime_type(file_name: str) -> str:
    """Guess a mime type from the extension, falling back to application/x-<ext>."""
    mime_type, _ = mimetypes.guess_type(file_name, strict=False)
    if mime_type:
        return mime_type
    extension = file_name.rsplit(".", 1)[1] if "." in file_name.lstrip(".") else ""
    fallback = f"application/x-{extension}"
    logger.debug("Unrecognized mime type for %s, using %s", file_name, fallback)
    return fallback
