"""HLS media playlist parsing and regeneration.

All functions are pure.  Only the parts needed for ad filtering are
understood: ``#EXTINF`` durations, segment URIs and the leading header
block.  Everything else is carried over verbatim or dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urljoin

from castarr.domain.entities.manifest import FilterOptions, Segment
from castarr.domain.exceptions import ManifestParseError

_EXTINF_RE = re.compile(r"#EXTINF:([0-9.]+)")
_URI_ATTR_RE = re.compile(r'URI="([^"]*)"')

_EXTINF = "#EXTINF:"
_ENDLIST = "#EXT-X-ENDLIST"


def _parse_duration(line: str) -> float:
    match = _EXTINF_RE.match(line)
    if match is None:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        # e.g. "#EXTINF:1.2.3"
        return 0.0


def ensure_playlist(content: str) -> None:
    """Raise :class:`ManifestParseError` unless *content* starts with ``#EXTM3U``."""
    if not content.lstrip("\ufeff \t\r\n").startswith("#EXTM3U"):
        raise ManifestParseError("missing #EXTM3U header")


def is_master_playlist(content: str) -> bool:
    """True for variant lists (``#EXT-X-STREAM-INF``) rather than segment lists."""
    return any(
        line.strip().startswith("#EXT-X-STREAM-INF") for line in content.splitlines()
    )


def parse_segments(content: str) -> list[Segment]:
    """Return the segments of a media playlist in order.

    ``#EXTINF:<d>`` sets the duration of the next URI line; a URI without
    a preceding ``#EXTINF`` gets duration 0.
    """
    segments: list[Segment] = []
    pending = 0.0
    for raw in content.splitlines():
        line = raw.strip()
        if line.startswith(_EXTINF):
            pending = _parse_duration(line)
        elif line and not line.startswith("#"):
            segments.append(Segment(uri=line, duration=pending))
            pending = 0.0
    return segments


def is_ad_segment(segment: Segment, options: FilterOptions) -> bool:
    """Short segments and URIs matching an ad pattern are ads."""
    if segment.duration < options.min_segment_duration:
        return True
    uri = segment.uri.lower()
    return any(pattern.lower() in uri for pattern in options.ad_patterns)


def classify_segments(
    segments: Iterable[Segment], options: FilterOptions
) -> list[Segment]:
    """Return copies of *segments* with ``is_ad`` set."""
    return [
        Segment(uri=s.uri, duration=s.duration, is_ad=is_ad_segment(s, options))
        for s in segments
    ]


def header_lines(content: str) -> list[str]:
    """Directive lines before the first segment URI.

    Blank lines, ``#EXTINF`` and ``#EXT-X-ENDLIST`` are dropped.
    """
    header: list[str] = []
    for raw in content.splitlines():
        line = raw.strip()
        if line and not line.startswith("#"):
            break
        if not line or line.startswith(_EXTINF) or line.startswith(_ENDLIST):
            continue
        header.append(line)
    return header


def absolutize(uri: str, base_url: str | None) -> str:
    if not base_url:
        return uri
    return urljoin(base_url, uri)


def _absolutize_attributes(line: str, base_url: str | None) -> str:
    if not base_url:
        return line
    return _URI_ATTR_RE.sub(
        lambda m: f'URI="{urljoin(base_url, m.group(1))}"', line
    )


def regenerate_playlist(
    segments: Sequence[Segment],
    original: str,
    base_url: str | None = None,
) -> str:
    """Build a playlist from the kept *segments*.

    Layout: header lines of *original*, then ``#EXTINF:<d>,`` and URI per
    segment (duration with three decimals), then ``#EXT-X-ENDLIST``.
    When *base_url* is given, relative URIs (segment lines and
    ``URI="..."`` attributes) are resolved against it.
    """
    lines = [_absolutize_attributes(h, base_url) for h in header_lines(original)]
    for segment in segments:
        lines.append(f"#EXTINF:{segment.duration:.3f},")
        lines.append(absolutize(segment.uri, base_url))
    lines.append(_ENDLIST)
    return "\n".join(lines)
