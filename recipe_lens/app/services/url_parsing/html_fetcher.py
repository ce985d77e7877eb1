"""HTML fetching and URL validation utilities."""

import ipaddress
import json
import logging
import re
from typing import Dict, Optional
from urllib.parse import urlparse

import httpx

from recipe_lens.app.core.config import get_settings
from recipe_lens.app.services.url_parsing.models import SiteCategory

logger = logging.getLogger(__name__)

META_CHARSET_RE = re.compile(r'<meta[^>]+charset=["\']?([^"\'>\s;]+)', re.I)

TIKTOK_STATE_MARKERS = ("SIGI_STATE", "ItemModule", "__UNIVERSAL_DATA_FOR_REHYDRATION__")
INSTAGRAM_STATE_MARKERS = ("_sharedData", "edge_media_to_caption")


class InvalidRecipeUrl(ValueError):
    """The URL cannot be fetched: bad scheme, no host, or a private/loopback host."""


def is_private_host(host: str) -> bool:
    """Check if a host is private/localhost."""
    hostname = host.strip("[]").lower()
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return hostname == "localhost" or hostname.endswith(".localhost")
    return ip.is_private or ip.is_loopback or ip.is_link_local


def validate_url(url: str) -> str:
    """Return the stripped URL or raise InvalidRecipeUrl."""
    candidate = (url or "").strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"}:
        raise InvalidRecipeUrl("URL must start with http or https.")
    if not parsed.netloc or not parsed.hostname:
        raise InvalidRecipeUrl("URL has no host.")
    if is_private_host(parsed.hostname):
        raise InvalidRecipeUrl("Host is blocked (localhost/private).")
    return candidate


def _browser_headers(user_agent: str) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Accept-Encoding": "gzip, deflate",
        "Referer": "https://www.google.com/",
        "Connection": "keep-alive",
    }


def _cookies() -> Dict[str, str]:
    raw = get_settings().scraper_cookies
    if not raw:
        return {}
    try:
        cookies = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("SCRAPER_COOKIES is not a JSON object; ignoring")
        return {}
    return cookies if isinstance(cookies, dict) else {}


def decode_response(response: httpx.Response) -> str:
    """Decode the body using the header charset, then a <meta charset>, then utf-8."""
    content_bytes = response.content
    content_type = response.headers.get("content-type", "")

    encoding = None
    if "charset=" in content_type.lower():
        encoding = content_type.lower().split("charset=")[1].split(";")[0].strip().strip("\"'")
    if encoding:
        try:
            return content_bytes.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.debug("Header charset %s failed for %s", encoding, response.url)

    text = content_bytes.decode("utf-8", errors="replace")
    match = META_CHARSET_RE.search(text[:4096])
    if match:
        detected = match.group(1).lower()
        if detected not in {"utf-8", "utf8"}:
            try:
                return content_bytes.decode(detected)
            except (UnicodeDecodeError, LookupError):
                pass
    return text


async def fetch_html(url: str, user_agent: Optional[str] = None, timeout: Optional[float] = None) -> str:
    """GET a page and return its decoded HTML; "" on non-2xx responses or network failures."""
    settings = get_settings()
    seconds = timeout if timeout is not None else settings.fetch_timeout_seconds
    headers = _browser_headers(user_agent or settings.scraper_user_agent)
    try:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(seconds, connect=min(seconds, settings.fetch_connect_timeout_seconds)),
            follow_redirects=True,
            headers=headers,
            cookies=_cookies(),
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException as exc:
        logger.warning("Timed out fetching %s: %s", url, exc)
        return ""
    except httpx.HTTPError as exc:
        logger.warning("Network error fetching %s: %s", url, exc)
        return ""

    if not 200 <= response.status_code < 300:
        logger.info("Fetch of %s returned status %s", url, response.status_code)
        return ""
    return decode_response(response)


async def fetch_mobile_html(url: str) -> str:
    settings = get_settings()
    return await fetch_html(
        url,
        user_agent=settings.scraper_mobile_user_agent,
        timeout=settings.mobile_refetch_timeout_seconds,
    )


def needs_mobile_refetch(html: str, category: SiteCategory) -> bool:
    """Platform pages served without their embedded state are worth a mobile retry."""
    if category == SiteCategory.TIKTOK:
        return not any(marker in (html or "") for marker in TIKTOK_STATE_MARKERS)
    if category == SiteCategory.INSTAGRAM:
        return not any(marker in (html or "") for marker in INSTAGRAM_STATE_MARKERS)
    return False


async def fetch_document(url: str, category: SiteCategory) -> str:
    """Desktop fetch with at most one mobile refetch; the larger document wins."""
    html = await fetch_html(url)
    if not needs_mobile_refetch(html, category):
        return html
    logger.info("Embedded state missing for %s (%s); retrying with mobile identity", url, category.value)
    mobile_html = await fetch_mobile_html(url)
    if len(mobile_html) > len(html):
        return mobile_html
    return html
