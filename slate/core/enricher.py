"""Link Enricher component for fetching page previews."""

import asyncio
import logging
from typing import Callable
from urllib.error import URLError
from urllib.parse import urljoin
from urllib.request import Request, urlopen

import trafilatura

from .errors import EnrichmentError
from .models import LinkMetadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS: int = 3000
MAX_HTML_BYTES: int = 512 * 1024
USER_AGENT = "Slate/0.1 (clipboard link preview)"

MetadataFetcher = Callable[[str, int], LinkMetadata]


def parse_preview(html: str, url: str) -> LinkMetadata:
    """Extract preview metadata from an HTML document.

    Title, description, image and canonical URL come from
    ``trafilatura.extract_metadata``, which reads OpenGraph tags first and
    falls back to the plain head elements.

    Args:
        html: Page source.
        url: Page URL, used to resolve relative image links.

    Returns:
        LinkMetadata with whatever fields the page provides.

    Raises:
        EnrichmentError: If the document cannot be parsed.
    """
    try:
        document = trafilatura.extract_metadata(html, default_url=url)
    except Exception as e:
        raise EnrichmentError(f"Could not parse preview for {url}", e) from e

    if document is None:
        return LinkMetadata(url=url)

    image = document.image
    if image:
        image = urljoin(url, image)

    return LinkMetadata(
        title=document.title or None,
        description=document.description or None,
        image=image or None,
        url=document.url or url,
    )


def fetch_link_metadata(url: str, timeout_ms: int) -> LinkMetadata:
    """Fetch a page and extract its preview metadata.

    Blocking; run it off the event loop.

    Raises:
        EnrichmentError: On network errors, non-HTML responses or parse failures.
    """
    request = Request(url, headers={'User-Agent': USER_AGENT, 'Accept': 'text/html'})
    try:
        with urlopen(request, timeout=timeout_ms / 1000) as response:
            content_type = response.headers.get('Content-Type', '')
            if 'html' not in content_type.lower():
                raise EnrichmentError(f"Unsupported content type for preview: {content_type!r}")
            charset = response.headers.get_content_charset() or 'utf-8'
            html = response.read(MAX_HTML_BYTES).decode(charset, errors='replace')
    except EnrichmentError:
        raise
    except (URLError, TimeoutError, OSError, ValueError) as e:
        raise EnrichmentError(f"Fetch failed for {url}", e) from e

    return parse_preview(html, url)


class LinkEnricher:
    """Fetch link previews with a bounded timeout, never raising."""

    def __init__(
        self,
        fetcher: MetadataFetcher | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        """Initialize link enricher.

        Args:
            fetcher: Blocking metadata fetch capability. Defaults to the
                urllib based fetcher.
            timeout_ms: Default timeout for each enrichment.
        """
        self._fetcher = fetcher or fetch_link_metadata
        self._timeout_ms = timeout_ms

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    async def enrich(self, url: str, timeout_ms: int | None = None) -> LinkMetadata:
        """Fetch metadata for a URL.

        Args:
            url: Link to preview.
            timeout_ms: Override for the default timeout.

        Returns:
            Fetched metadata, or the placeholder on failure or timeout.
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self._timeout_ms

        try:
            metadata = await asyncio.wait_for(
                asyncio.to_thread(self._fetcher, url, timeout_ms),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Link preview timed out after {timeout_ms}ms: {url}")
            return LinkMetadata.placeholder(url)
        except Exception as e:
            logger.warning(f"Link preview failed for {url}: {e}")
            return LinkMetadata.placeholder(url)

        if metadata is None:
            return LinkMetadata.placeholder(url)
        if metadata.url is None:
            metadata.url = url
        return metadata
