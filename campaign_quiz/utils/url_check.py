"""
Server-side reachability check for learning materials URLs
"""
import logging
from typing import Optional, Tuple
from urllib.parse import urlparse

import httpx

from campaign_quiz.config import settings

logger = logging.getLogger(__name__)


def check_url(url: str, timeout: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Check that a URL answers with a success or redirect status

    HEAD is tried first; servers that refuse HEAD get a GET.

    Returns:
        Tuple of (is_reachable, error message or None)
    """
    if not url:
        return False, "URL is empty"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False, "URL must be an absolute http(s) address"

    try:
        with httpx.Client(timeout=timeout or settings.URL_CHECK_TIMEOUT, follow_redirects=True) as client:
            response = client.head(url)
            if response.status_code in (405, 501):
                response = client.get(url)
    except httpx.HTTPError as e:
        logger.warning(f"URL check failed for {url}: {str(e)}")
        return False, str(e) or e.__class__.__name__

    if 200 <= response.status_code < 400:
        return True, None

    logger.warning(f"URL check for {url} returned HTTP {response.status_code}")
    return False, f"HTTP {response.status_code}"
