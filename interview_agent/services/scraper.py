"""Web scraping and search through the Firecrawl HTTP API.

Only the few endpoints we need are wrapped: ``/scrape`` for pages and
documents and ``/search`` for web search. Every failure is raised as
``ScrapeFailed`` so creator-facing routes can report it.
"""
import re
from urllib.parse import urlparse

import requests
from flask import current_app

from ..errors import ScrapeFailed

_MD_IMAGE = re.compile(r"!\[.*?\]\(.*?\)")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def is_valid_url(url):
    try:
        parsed = urlparse(url or '')
    except ValueError:
        return False
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def extract_main_content(text):
    """Drop markdown images and collapse runs of blank lines."""
    text = _MD_IMAGE.sub('', text or '')
    text = _EXTRA_NEWLINES.sub('\n\n', text)
    return text.strip()


def _post(path, payload):
    api_key = current_app.config.get('FIRECRAWL_API_KEY')
    if not api_key:
        raise ScrapeFailed('FIRECRAWL_API_KEY is not configured')
    url = current_app.config.get('FIRECRAWL_BASE_URL', 'https://api.firecrawl.dev/v1').rstrip('/') + path
    try:
        r = requests.post(
            url,
            headers={'Authorization': f'Bearer {api_key}', 'Content-Type': 'application/json'},
            json=payload,
            timeout=current_app.config.get('SCRAPE_TIMEOUT_SEC', 60),
        )
    except requests.exceptions.RequestException as e:
        current_app.logger.warning('Firecrawl %s network error: %s', path, e)
        raise ScrapeFailed() from e
    if r.status_code >= 400:
        current_app.logger.error('Firecrawl %s HTTP error %s: %s', path, r.status_code, (r.text or '')[:1000])
        raise ScrapeFailed()
    try:
        jr = r.json()
    except ValueError as e:
        raise ScrapeFailed() from e
    if isinstance(jr, dict) and jr.get('success') is False:
        current_app.logger.error('Firecrawl %s reported failure: %s', path, jr.get('error'))
        raise ScrapeFailed()
    return jr


def scrape_url(url):
    """Return ``{content, title, metadata}`` for one page."""
    if not is_valid_url(url):
        raise ScrapeFailed(f'Invalid URL: {url}')
    jr = _post('/scrape', {'url': url, 'formats': ['markdown', 'html']})
    data = jr.get('data') or {}
    metadata = data.get('metadata') or {}
    return {
        'content': data.get('markdown') or data.get('html') or '',
        'title': metadata.get('title') or '',
        'metadata': metadata,
    }


def scrape_document(document_url):
    """Extract text from an uploaded PDF/DOCX reachable over HTTP."""
    if not is_valid_url(document_url):
        raise ScrapeFailed('Document is not reachable over HTTP')
    jr = _post('/scrape', {'url': document_url, 'formats': ['markdown']})
    data = jr.get('data') or {}
    return {'content': data.get('markdown') or '', 'metadata': data.get('metadata') or {}}


def search(query, max_results=10):
    jr = _post('/search', {'query': query, 'limit': max_results})
    results = jr.get('data') if isinstance(jr, dict) else jr
    out = []
    for item in results or []:
        if not isinstance(item, dict) or not item.get('url'):
            continue
        out.append({
            'url': item['url'],
            'title': item.get('title') or '',
            'description': item.get('description') or '',
            'content': item.get('markdown') or item.get('content') or '',
        })
    return out
