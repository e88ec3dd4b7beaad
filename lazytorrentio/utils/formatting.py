import math
import re
from typing import Optional

SIZE_PATTERN = re.compile(r"([\d.]+)\s*(B|KB|MB|GB|TB|KIB|MIB|GIB|TIB)", re.IGNORECASE)
FILENAME_PATTERN = re.compile(r"\b([^\s/\\]+?\.(?:mkv|mp4|avi|ts|m4v))\b", re.IGNORECASE)
QUALITY_PATTERN = re.compile(r"\b(2160p|1080p|720p|480p|4k|uhd)\b", re.IGNORECASE)

SIZE_MULTIPLIERS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
    "KIB": 1024,
    "MIB": 1024**2,
    "GIB": 1024**3,
    "TIB": 1024**4,
}


def parse_number(value: str):
    try:
        number = float(value.replace(",", "").strip() or 0)
    except ValueError:
        return 0

    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def parse_size_to_bytes(raw_size: str) -> Optional[int]:
    match = SIZE_PATTERN.search(raw_size.strip())
    if not match:
        return None

    try:
        value = float(match.group(1))
    except ValueError:
        return None

    multiplier = SIZE_MULTIPLIERS.get(match.group(2).upper())
    if not multiplier or not math.isfinite(value):
        return None

    return round(value * multiplier)


def extract_filename(name: str) -> Optional[str]:
    match = FILENAME_PATTERN.search(name)
    return match.group(1) if match else None


def format_bytes(bytes_value: int):
    value = float(bytes_value)
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1

    precision = 0 if value >= 10 or unit_index == 0 else 2
    return f"{value:.{precision}f} {units[unit_index]}"


def extract_quality_hint(text: str) -> Optional[str]:
    match = QUALITY_PATTERN.search(text)
    if not match:
        return None

    quality = match.group(1).lower()
    if quality in ("4k", "uhd"):
        return "2160p"
    return quality


def format_episode_tag(season: Optional[int], episode: Optional[int]):
    if not season or not episode:
        return None
    return f"S{season:02d}E{episode:02d}"


def build_behavior_hints(
    name: Optional[str],
    size_bytes: Optional[int] = None,
    binge_prefix: str = "lazy-torrentio",
):
    hints = {}
    if isinstance(size_bytes, int) and size_bytes > 0:
        hints["videoSize"] = size_bytes

    if name:
        filename = extract_filename(name)
        if filename:
            hints["filename"] = filename

        quality = extract_quality_hint(name)
        if quality:
            hints["bingeGroup"] = f"{binge_prefix}|{quality}"

    return hints or None


def _build_title_pattern(title: str):
    words = [word for word in re.split(r"[^a-zA-Z0-9]+", title) if word]
    if not words:
        return None

    return re.compile("[^a-z0-9]+".join(words), re.IGNORECASE)


def _build_torrent_slug(torrent_name: Optional[str], imdb_title: Optional[str]):
    if not torrent_name:
        return None

    stripped = torrent_name
    if imdb_title:
        pattern = _build_title_pattern(imdb_title)
        if pattern:
            stripped = pattern.sub("", stripped, count=1)

    cleaned = re.sub(r"[._]+", " ", stripped)
    cleaned = re.sub(r"\s+", " ", cleaned)
    cleaned = re.sub(r"^[^a-zA-Z0-9]+|[^a-zA-Z0-9]+$", "", cleaned).strip()
    return cleaned or None


def _format_info_line(
    seeders: Optional[int], size_bytes: Optional[int], size_label: Optional[str]
):
    parts = []
    if isinstance(seeders, int) and seeders > 0:
        parts.append(f"🌱 {seeders}")
    if isinstance(size_bytes, int) and size_bytes > 0:
        parts.append(f"💾 {format_bytes(size_bytes)}")
    elif size_label:
        parts.append(f"💾 {size_label.strip()}")

    return " • ".join(parts) if parts else None


def format_stream_display(
    addon_prefix: str,
    imdb_title: str,
    season: Optional[int] = None,
    episode: Optional[int] = None,
    torrent_name: Optional[str] = None,
    quality: Optional[str] = None,
    seeders: Optional[int] = None,
    size_bytes: Optional[int] = None,
    size_label: Optional[str] = None,
):
    quality_label = quality.strip() if quality else None
    name = (
        f"🧲 {addon_prefix} {quality_label}" if quality_label else f"🧲 {addon_prefix}"
    )

    title_emoji = "📺" if season and episode else "🎬"
    episode_tag = format_episode_tag(season, episode)
    slug = _build_torrent_slug(torrent_name, imdb_title)

    lines = [f"{title_emoji} {imdb_title}"]
    if episode_tag:
        lines.append(f"📌 {episode_tag}")
    if slug:
        lines.append(f"🏷️ {slug}")

    return {
        "name": name,
        "title": "\n".join(lines),
        "description": _format_info_line(seeders, size_bytes, size_label),
    }
