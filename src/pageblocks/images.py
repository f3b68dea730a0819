# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Image candidate resolution: pick one real image URL per ``<img>``.

Priority chain (first hit wins):
  1. runtime ``currentSrc`` (not a placeholder)
  2. enclosing / contained ``<a href>`` that itself points at an image
  3. ``src`` (not a placeholder)
  4. best ``srcset`` entry
  5. best ``<picture><source srcset>`` entry
  6. lazy-load attributes (``data-src`` ...)

The winner is then rejected if it is a placeholder, a tracking pixel or
spacer, an avatar-sized image, or a URL already emitted in this run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urljoin, urlparse

import lxml.html

from pageblocks.dom import PageRuntime, class_name, closest_tag, parse_int_attr, select_all
from pageblocks.fragments import is_absolute_url, to_absolute_url

logger = logging.getLogger(__name__)

# ---- Heuristic constants ----
_MIN_CONTENT_IMAGE_PX = 100  # below this (either axis) = icon/avatar
_INLINE_DATA_URL_MIN_LEN = 200  # shorter data: URLs are lazy-load placeholders
_PIXEL_DENSITY_SCALE = 1000  # 2x must outrank typical "800w" widths

_IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".bmp", ".ico", ".avif")
# Non-exhaustive CDN / upload path hints
_IMAGE_HOST_HINTS = (
    "substackcdn",
    "imgur",
    "cloudinary",
    "imgix",
    "wp-content/uploads",
    "media.",
    "images.",
    "cdn.",
)
_PLACEHOLDER_PATTERNS = ("placeholder", "spacer", "blank.gif", "pixel.gif", "loading.")
_TRACKING_PATTERNS = ("spacer", "pixel", "tracking")
_AVATAR_CLASS_HINTS = ("avatar", "profile", "author")
_LAZY_ATTRS = ("data-src", "data-lazy-src", "data-original", "data-lazy", "data-full-src")

_RESIZE_RE = re.compile(r"resize:(fit|fill):(\d+)(?::(\d+))?")
_SRCSET_DESCRIPTOR_RE = re.compile(r"\s+(\d+(?:\.\d+)?[wx])$", re.IGNORECASE)
_USABLE_SRCSET_URL_RE = re.compile(r"^(https?://|//|/)")
_LEADING_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


class ImageRejectReason(StrEnum):
    """Why a candidate image did not become an Image block."""

    NO_CANDIDATE = "no-candidate"
    UNRESOLVED = "unresolved"
    TRACKING_PIXEL = "tracking-pixel"
    PLACEHOLDER = "placeholder"
    DUPLICATE = "duplicate"
    SMALL_OR_AVATAR = "small-or-avatar"


@dataclass(frozen=True, slots=True)
class ImageDecision:
    src: str = ""
    reason: ImageRejectReason | None = None

    @property
    def accepted(self) -> bool:
        return self.reason is None and bool(self.src)


# ---------------------------------------------------------------------------
# URL heuristics
# ---------------------------------------------------------------------------


def is_image_url(url: str | None) -> bool:
    """Does ``url`` look like a direct image link? Tunable, not exhaustive."""
    if not url:
        return False
    lower = url.lower()
    if lower.startswith(("javascript:", "data:")):
        return False
    for ext in _IMAGE_EXTENSIONS:
        if lower.endswith(ext) or f"{ext}?" in lower or f"{ext}#" in lower:
            return True
    return any(hint in lower for hint in _IMAGE_HOST_HINTS)


def is_placeholder_url(url: str | None) -> bool:
    if not url:
        return True
    lower = url.lower()
    if lower.startswith("data:") and len(url) < _INLINE_DATA_URL_MIN_LEN:
        return True
    return any(p in lower for p in _PLACEHOLDER_PATTERNS)


def normalize_image_url(url: str | None, base_url: str = "") -> str:
    """Dedup key: lower-cased path of the absolute URL, query ignored."""
    if not url:
        return ""
    try:
        path = urlparse(urljoin(base_url, url)).path
    except ValueError:
        return url.lower()
    return path.lower() if path else url.lower()


def _descriptor_score(descriptor: str | None) -> float:
    if not descriptor:
        return 1
    m = _LEADING_NUMBER_RE.match(descriptor)
    if descriptor.endswith("w"):
        return int(float(m.group(0))) if m and float(m.group(0)) >= 1 else 1
    value = float(m.group(0)) if m else 0.0
    return (value or 1) * _PIXEL_DENSITY_SCALE


def _parse_srcset(srcset: str | None) -> list[tuple[str, float]]:
    """(url, score) pairs for every usable srcset candidate."""
    if not srcset:
        return []
    candidates = []
    for part in srcset.split(","):
        part = part.strip()
        if not part or part.startswith("data:"):
            continue
        m = _SRCSET_DESCRIPTOR_RE.search(part)
        if m:
            url = part[: m.start()].strip()
            descriptor = m.group(1).lower()
        else:
            url, descriptor = part, None
        url = url.strip("\"'")
        if not url or url.startswith("data:") or not _USABLE_SRCSET_URL_RE.match(url):
            continue
        candidates.append((url, _descriptor_score(descriptor)))
    return candidates


def best_srcset_url(srcset: str | None) -> str | None:
    """Highest-scoring srcset URL; on ties the later candidate wins."""
    best_url = None
    best_score = 0.0
    for url, score in _parse_srcset(srcset):
        if score >= best_score:
            best_url, best_score = url, score
    return best_url


# ---------------------------------------------------------------------------
# Element heuristics
# ---------------------------------------------------------------------------


def _natural_size(img: lxml.html.HtmlElement, runtime: PageRuntime) -> tuple[int, int] | None:
    try:
        return runtime.natural_size(img)
    except Exception as e:
        logger.debug("natural_size query failed: %s", e)
        return None


def _current_src(img: lxml.html.HtmlElement, runtime: PageRuntime) -> str | None:
    try:
        return runtime.current_src(img)
    except Exception as e:
        logger.debug("current_src query failed: %s", e)
        return None


def is_tracking_pixel_or_spacer(img: lxml.html.HtmlElement, src: str | None, runtime: PageRuntime) -> bool:
    """1x1 / 0x0 images and spacer/pixel/tracking file names."""
    size = _natural_size(img, runtime)
    if size and size[0] and size[1]:
        width, height = size
        known = True
    else:
        attr_w = parse_int_attr(img, "width")
        attr_h = parse_int_attr(img, "height")
        # Undeclared dimensions are unknown, not zero
        known = attr_w is not None or attr_h is not None
        width, height = attr_w or 0, attr_h or 0
    if known and ((width == 1 and height == 1) or (width == 0 and height == 0)):
        return True
    if src:
        lower = src.lower()
        if any(p in lower for p in _TRACKING_PATTERNS):
            return True
    return False


def is_small_or_avatar_image(img: lxml.html.HtmlElement | None, src: str | None, runtime: PageRuntime) -> bool:
    if not src:
        return True
    m = _RESIZE_RE.search(src)
    if m:
        width = int(m.group(2))
        height = int(m.group(3)) if m.group(3) else width
        if width < _MIN_CONTENT_IMAGE_PX or height < _MIN_CONTENT_IMAGE_PX:
            return True
    if img is not None:
        size = _natural_size(img, runtime)
        if size:
            nat_w, nat_h = size
            if nat_w > 0 and nat_h > 0 and (nat_w < _MIN_CONTENT_IMAGE_PX or nat_h < _MIN_CONTENT_IMAGE_PX):
                return True
        cls = class_name(img).lower()
        if any(hint in cls for hint in _AVATAR_CLASS_HINTS):
            return True
    return False


def _linked_image_href(container: lxml.html.HtmlElement | None) -> str | None:
    if container is None:
        return None
    link = container if container.tag == "a" and container.get("href") else None
    if link is None:
        parent = closest_tag(container, "a")
        while parent is not None and not parent.get("href"):
            parent = closest_tag(parent, "a")
        link = parent
    if link is None:
        inner = select_all(container, "a[href]")
        link = inner[0] if inner else None
    if link is None:
        return None
    href = link.get("href")
    return href if is_image_url(href) else None


def _picture_source_url(img: lxml.html.HtmlElement, container: lxml.html.HtmlElement | None) -> str | None:
    picture = closest_tag(img, "picture")
    if picture is None and container is not None:
        found = select_all(container, "picture")
        picture = found[0] if found else None
    if picture is None:
        return None
    best_url = None
    best_score = 0.0
    for source in select_all(picture, "source[srcset]"):
        for url, score in _parse_srcset(source.get("srcset")):
            if score >= best_score:
                best_url, best_score = url, score
    return best_url


def extract_best_image_url(
    img: lxml.html.HtmlElement,
    container: lxml.html.HtmlElement | None = None,
    *,
    runtime: PageRuntime,
) -> str | None:
    """Walk the priority chain and return the raw (possibly relative) winner."""
    if container is None:
        container = img.getparent()

    current = _current_src(img, runtime)
    if current and not is_placeholder_url(current):
        return current

    linked = _linked_image_href(container)
    if linked:
        return linked

    src = img.get("src")
    if src and not is_placeholder_url(src):
        return src

    from_srcset = best_srcset_url(img.get("srcset"))
    if from_srcset:
        return from_srcset

    from_picture = _picture_source_url(img, container)
    if from_picture:
        return from_picture

    for attr in _LAZY_ATTRS:
        val = img.get(attr)
        if val and "data:" not in val:
            return val
    return None


def resolve_image(
    img: lxml.html.HtmlElement,
    *,
    container: lxml.html.HtmlElement | None = None,
    base_url: str = "",
    runtime: PageRuntime,
    seen: set[str],
) -> ImageDecision:
    """Resolve, filter and dedup one image. Records accepted URLs in ``seen``."""
    src = to_absolute_url(extract_best_image_url(img, container, runtime=runtime), base_url)
    if not src:
        return ImageDecision(reason=ImageRejectReason.NO_CANDIDATE)
    if not is_absolute_url(src):
        # No page URL to resolve against
        return ImageDecision(src, ImageRejectReason.UNRESOLVED)
    if is_tracking_pixel_or_spacer(img, src, runtime):
        return ImageDecision(src, ImageRejectReason.TRACKING_PIXEL)
    if is_placeholder_url(src):
        return ImageDecision(src, ImageRejectReason.PLACEHOLDER)
    key = normalize_image_url(src, base_url)
    if key in seen:
        return ImageDecision(src, ImageRejectReason.DUPLICATE)
    if is_small_or_avatar_image(img, src, runtime):
        return ImageDecision(src, ImageRejectReason.SMALL_OR_AVATAR)
    seen.add(key)
    return ImageDecision(src)
