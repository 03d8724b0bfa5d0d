"""Plain-text extraction from PDF bytes and HTML pages."""

import io
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from pypdf import PdfReader
from readability import Document as ReadableDocument

from .content_fetch_service import ContentFetchError, get_with_checked_redirects

WEB_FETCH_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (compatible; Cognify/1.0; +https://cognify.app)',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
}
FALLBACK_CONTENT_SELECTORS = [
    'article',
    'main',
    '[role="main"]',
    '.post-content',
    '.article-content',
    '.entry-content',
    '.content',
    '#content',
]
BODY_NOISE_SELECTORS = 'script, style, nav, footer, header, aside, .sidebar, .nav, .menu'
FALLBACK_MIN_CHARS = 200
READABILITY_EMPTY_TITLE = '[no-title]'
WHITESPACE_RE = re.compile(r'\s+')


class TextExtractionError(Exception):
    pass


@dataclass(frozen=True)
class WebPageContent:
    title: str
    content: str
    url: str
    site_name: Optional[str] = None


def clean_text(text):
    return WHITESPACE_RE.sub(' ', text or '').strip()


def format_text_for_summary(text):
    return clean_text(text)


def extract_text_from_pdf(data, max_words=20000):
    """Return the PDF's text, capped at max_words whitespace-separated words."""
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            reader.decrypt('')
        pages = [page.extract_text() or '' for page in reader.pages]
    except Exception as exc:
        raise TextExtractionError(f'Could not read PDF: {exc}') from exc
    words = '\n'.join(pages).split()
    return ' '.join(words[:max_words])


def get_page_name_from_url(url):
    try:
        parsed = urlparse(url)
        hostname = (parsed.hostname or '').replace('www.', '')
        if not hostname:
            return 'Web Page'
        segments = [segment for segment in parsed.path.split('/') if segment]
        if segments:
            last_segment = re.sub(r'[-_]', ' ', segments[-1])
            last_segment = re.sub(r'\.\w+$', '', last_segment).strip()
            if len(last_segment) > 3:
                return f"{last_segment} - {hostname}"
        return hostname
    except ValueError:
        return 'Web Page'


def _readability_extract(html):
    try:
        document = ReadableDocument(html)
        summary_html = document.summary(html_partial=True)
        title = (document.short_title() or '').strip()
    except Exception:
        return '', ''
    text = clean_text(BeautifulSoup(summary_html, 'html.parser').get_text(' '))
    if title == READABILITY_EMPTY_TITLE:
        title = ''
    return text, title


def extract_fallback_content(soup):
    for selector in FALLBACK_CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        text = clean_text(element.get_text(' '))
        if len(text) > FALLBACK_MIN_CHARS:
            return text

    if soup.body is None:
        return None
    body = BeautifulSoup(str(soup.body), 'html.parser')
    for element in body.select(BODY_NOISE_SELECTORS):
        element.decompose()
    text = clean_text(body.get_text(' '))
    if len(text) > FALLBACK_MIN_CHARS:
        return text
    return None


def _meta_site_name(soup):
    tag = soup.find('meta', attrs={'property': 'og:site_name'})
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def parse_web_page(html, url):
    soup = BeautifulSoup(html or '', 'html.parser')
    page_title = soup.title.get_text(strip=True) if soup.title else ''
    site_name = _meta_site_name(soup)

    text, readable_title = _readability_extract(html or '')
    if text:
        return WebPageContent(
            title=readable_title or page_title or 'Untitled',
            content=text,
            url=url,
            site_name=site_name,
        )

    fallback = extract_fallback_content(soup)
    if not fallback:
        raise ContentFetchError('Could not extract content from this page')
    return WebPageContent(title=page_title or 'Untitled', content=fallback, url=url, site_name=site_name)


def extract_web_page_content(url, *, timeout=20, http_get=requests.get):
    try:
        _final_url, response = get_with_checked_redirects(url, http_get=http_get, headers=WEB_FETCH_HEADERS, timeout=timeout)
    except requests.RequestException as exc:
        raise ContentFetchError(f'Failed to fetch page: {exc.__class__.__name__}') from exc

    if not response.ok:
        raise ContentFetchError(f'Failed to fetch page: {response.status_code} {response.reason}')

    content_type = str(response.headers.get('Content-Type', '') or '').lower()
    if 'text/html' not in content_type and 'application/xhtml' not in content_type:
        raise ContentFetchError('URL does not point to a web page')

    return parse_web_page(response.text, url)
