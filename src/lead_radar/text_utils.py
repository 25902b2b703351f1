# text_utils.py
"""Text and URL normalization helpers shared by every pipeline stage."""

import hashlib
import re
from functools import lru_cache
from typing import Any, Iterable, List, Optional, Set, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_WHITESPACE_RE = re.compile(r"\s+")
_TOKEN_RE = re.compile(r"[0-9a-zа-яё]+", re.IGNORECASE)
_CYRILLIC_RE = re.compile(r"[а-яё]", re.IGNORECASE)
_LATIN_RE = re.compile(r"[a-z]", re.IGNORECASE)

TRACKING_PARAMS = frozenset({"gclid", "yclid", "fbclid", "ref", "from"})

MIN_TOKEN_LENGTH = 3
STEM_LENGTH = 6
LANGUAGE_DOMINANCE = 1.4


def normalize_whitespace(value: Any) -> str:
    """Collapse runs of whitespace into single spaces and strip."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def normalize_text(value: Any) -> str:
    """Lowercase and collapse whitespace."""
    return normalize_whitespace(value).lower().replace("ё", "е")


def normalize_list(
    values: Any,
    max_items: int = 16,
    max_length: int = 80,
) -> List[str]:
    """Normalize a list of phrases.

    Non-string entries are dropped, values are lowercased and trimmed,
    duplicates removed (first occurrence wins) and both the item length
    and the item count are capped.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple, set, frozenset)):
        return []

    result: List[str] = []
    seen: Set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        item = normalize_whitespace(value).lower()[:max_length].strip()
        if not item or item in seen:
            continue
        seen.add(item)
        result.append(item)
        if len(result) >= max_items:
            break
    return result


def tokenize(text: str) -> List[str]:
    """Split text into lowercase word tokens of meaningful length."""
    return [
        token
        for token in _TOKEN_RE.findall(normalize_text(text))
        if len(token) >= MIN_TOKEN_LENGTH
    ]


def stem(token: str) -> str:
    """Crude stem: a prefix long enough to match inflected forms."""
    return token[:STEM_LENGTH]


def stems(text: str) -> Set[str]:
    """Set of token stems of a text."""
    return {stem(token) for token in tokenize(text)}


def count_letters(text: str) -> Tuple[int, int]:
    """Count Cyrillic and Latin letters."""
    return len(_CYRILLIC_RE.findall(text or "")), len(_LATIN_RE.findall(text or ""))


def detect_language(text: str) -> str:
    """Detect ``ru``, ``en`` or ``mixed`` by letter dominance."""
    cyrillic, latin = count_letters(text)
    if cyrillic == 0 and latin == 0:
        return "mixed"
    if cyrillic >= latin * LANGUAGE_DOMINANCE and cyrillic > 0:
        return "ru"
    if latin >= cyrillic * LANGUAGE_DOMINANCE and latin > 0:
        return "en"
    return "mixed"


def is_majority_cyrillic(text: str, min_letters: int = 20) -> bool:
    """Whether a text has enough letters and most of them are Cyrillic."""
    cyrillic, latin = count_letters(text)
    total = cyrillic + latin
    return total >= min_letters and cyrillic > total / 2


@lru_cache(maxsize=4096)
def _phrase_pattern(phrase: str) -> "re.Pattern[str]":
    # Short phrases must match whole words, longer ones match as prefixes
    # so that inflected forms ("тендера", "закупки") still hit.
    escaped = re.escape(phrase)
    if len(phrase) <= 3:
        return re.compile(rf"(?<!\w){escaped}(?!\w)")
    return re.compile(rf"(?<!\w){escaped}")


def find_phrases(text: str, phrases: Iterable[str]) -> List[str]:
    """Return the phrases that occur in ``text``, in the given order.

    Matching is case-insensitive and anchored at a word start.
    """
    haystack = normalize_text(text)
    if not haystack:
        return []
    found: List[str] = []
    for phrase in phrases:
        needle = normalize_text(phrase)
        if not needle or needle in found:
            continue
        if _phrase_pattern(needle).search(haystack):
            found.append(needle)
    return found


def contains_any(text: str, phrases: Iterable[str]) -> bool:
    """Whether any phrase occurs in ``text``."""
    return bool(find_phrases(text, phrases))


def clamp_score(value: Any, low: int = 0, high: int = 100) -> int:
    """Round and clamp a numeric value into [low, high]; junk becomes low."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if number != number:  # NaN
        return low
    return max(low, min(high, int(round(number))))


def sanitize_snippet(text: Any, max_length: int = 160) -> str:
    """Single-line snippet capped at ``max_length`` characters."""
    clean = normalize_whitespace(text)
    if len(clean) <= max_length:
        return clean
    return clean[: max_length - 1].rstrip() + "…"


def text_fingerprint(text: str) -> str:
    """SHA-1 of the normalized text, used as a dedupe key."""
    return hashlib.sha1(normalize_text(text).encode("utf-8")).hexdigest()


# ==============================================================================
# URLs
# ==============================================================================


def is_absolute_url(url: str) -> bool:
    """Whether ``url`` is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def domain_of(url: str) -> str:
    """Lowercased host without a leading ``www.``; empty on junk input."""
    try:
        host = (urlsplit((url or "").strip()).hostname or "").lower()
    except ValueError:
        return ""
    if host.startswith("www."):
        host = host[4:]
    return host


def host_matches(host: str, domain: str) -> bool:
    """Whether ``host`` is ``domain`` or one of its subdomains."""
    host = host.lower()
    domain = domain.lower().lstrip(".")
    return host == domain or host.endswith("." + domain)


def canonicalize_url(url: str) -> str:
    """Canonical form of a URL used for identity and deduplication.

    Forces https, lowercases the host and drops ``www.``, removes tracking
    parameters, fragments and trailing slashes. Telegram links collapse to
    ``https://t.me/<path>`` and VK links keep their first path segment only.
    Unparseable input is returned unchanged.
    """
    if not url or not isinstance(url, str):
        return url
    raw = url.strip()
    try:
        parsed = urlsplit(raw)
        port = parsed.port
    except ValueError:
        return raw
    if not parsed.scheme or not parsed.hostname:
        return raw

    host = parsed.hostname.lower()
    if host.startswith("www."):
        host = host[4:]
    netloc = host if port in (None, 80, 443) else f"{host}:{port}"
    path = parsed.path or ""

    if host in ("t.me", "telegram.me"):
        path = path.rstrip("/")
        if path.startswith("/s/"):
            path = path[2:]
        return f"https://t.me{path}"

    if host in ("vk.com", "m.vk.com"):
        segments = [segment for segment in path.split("/") if segment]
        return f"https://vk.com/{segments[0]}" if segments else "https://vk.com"

    # Sorted so that reordered parameters give the same key
    query = urlencode(sorted(
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if not key.lower().startswith("utm_") and key.lower() not in TRACKING_PARAMS
    ))
    path = path.rstrip("/") or "/"
    return urlunsplit(("https", netloc, path, query, ""))


def thread_key(url: str) -> str:
    """Canonical URL without its query string."""
    canonical = canonicalize_url(url)
    try:
        parsed = urlsplit(canonical)
    except ValueError:
        return canonical
    return urlunsplit((parsed.scheme, parsed.netloc, parsed.path, "", ""))


def site_filter(query: str) -> Optional[str]:
    """Return the ``site:`` operand of a query, if any."""
    match = re.search(r"(?<!\S)site:(\S+)", query or "", re.IGNORECASE)
    if not match:
        return None
    return match.group(1).lower().rstrip("/")
