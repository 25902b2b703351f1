"""HTTP page fetcher with HTML-to-text extraction."""

import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from lead_radar.config import config
from lead_radar.errors import ProviderTimeout
from lead_radar.logging_utils import get_logger
from lead_radar.models import FetchedPage
from lead_radar.providers.base import BasePageFetcher
from lead_radar.reference_data import SOCIAL_DOMAINS
from lead_radar.text_utils import domain_of, host_matches, normalize_whitespace

MAX_HTML_CHARS = 400_000
MAX_TEXT_CHARS = 20_000

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")

logger = get_logger(__name__)


@dataclass
class PageLinks:
    """Contact and social links found on a page."""

    emails: List[str] = field(default_factory=list)
    phones: List[str] = field(default_factory=list)
    social: List[str] = field(default_factory=list)


def html_to_text(html: str) -> tuple:
    """Extract (title, visible text) from HTML."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript", "svg"]):
        tag.decompose()
    title = soup.title.get_text(" ", strip=True) if soup.title else ""
    text = soup.get_text(" ", strip=True)
    return normalize_whitespace(title), normalize_whitespace(text)[:MAX_TEXT_CHARS]


def extract_links(html: str, base_url: str, max_links: int = 5) -> PageLinks:
    """Collect mailto, tel and social-profile links from a page."""
    links = PageLinks()
    if not html:
        return links
    soup = BeautifulSoup(html, "lxml")
    own_host = domain_of(base_url)

    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        if not href or href.startswith("#"):
            continue
        lowered = href.lower()
        if lowered.startswith("mailto:"):
            address = href[7:].split("?", 1)[0].strip()
            if _EMAIL_RE.fullmatch(address) and address not in links.emails:
                links.emails.append(address)
            continue
        if lowered.startswith("tel:"):
            number = re.sub(r"[^\d+]", "", href[4:])
            if len(number) >= 7 and number not in links.phones:
                links.phones.append(number)
            continue
        full = urljoin(base_url, href)
        host = domain_of(full)
        if not host or host == own_host:
            continue
        if any(host_matches(host, d.split("/", 1)[0]) for d in SOCIAL_DOMAINS):
            if full not in links.social:
                links.social.append(full)

    links.emails = links.emails[:max_links]
    links.phones = links.phones[:max_links]
    links.social = links.social[:max_links]
    return links


class HttpPageFetcher(BasePageFetcher):
    """Fetches HTML pages with requests and extracts text with BeautifulSoup."""

    def __init__(self, user_agent: Optional[str] = None):
        self.user_agent = user_agent or config.FETCH_USER_AGENT
        self.logger = logger

    def fetch(self, url: str, timeout: float) -> FetchedPage:
        """Fetch a page; unreadable pages come back as ``blocked``."""
        try:
            response = self.session.get(url, timeout=timeout, allow_redirects=True)
        except requests.exceptions.Timeout as e:
            raise ProviderTimeout(f"Fetch timed out: {url}", provider="fetch") from e
        except requests.exceptions.RequestException as e:
            self.logger.debug("Fetch failed", extra={"url": url, "error": str(e)})
            return FetchedPage(url=url, blocked=True)

        content_type = (response.headers.get("content-type", "") or "").lower()
        if response.status_code >= 400 or "text/html" not in content_type:
            self.logger.debug(
                "Page not readable",
                extra={"url": url, "status_code": response.status_code},
            )
            return FetchedPage(url=url, blocked=True)

        html = response.text[:MAX_HTML_CHARS]
        title, text = html_to_text(html)
        return FetchedPage(url=url, title=title, text=text, html=html)
