"""Source validation and retrieval for uploaded files and remote URLs."""

import ipaddress
import os
import re
from dataclasses import dataclass
from urllib.parse import unquote, urljoin, urlparse

import requests

PDF_MIME_TYPE = 'application/pdf'
PDF_SIGNATURE = b'%PDF-'
PDF_FETCH_USER_AGENT = 'Cognify/1.0 (PDF Study Tool)'
DEFAULT_PDF_FILE_NAME = 'Document.pdf'
MAX_SOURCE_URL_LENGTH = 4096
FETCH_CHUNK_SIZE = 64 * 1024
MAX_FETCH_REDIRECTS = 5
REDIRECT_STATUS_CODES = {301, 302, 303, 307, 308}
CONTENT_DISPOSITION_FILENAME_RE = re.compile(r'filename[^;=\n]*=(([\'"]).*?\2|[^;\n]*)')


class ContentFetchError(Exception):
    """Input problem whose message is safe to return to the client."""


@dataclass(frozen=True)
class FetchedFile:
    data: bytes
    file_name: str
    size: int


def is_pdf_url(url):
    lower_url = str(url or '').lower()
    return lower_url.endswith('.pdf') or '.pdf?' in lower_url


def is_blocked_hostname(hostname):
    host = str(hostname or '').strip().lower()
    if not host:
        return True
    if host in {'localhost', 'localhost.localdomain'}:
        return True
    if host.endswith('.local') or host.endswith('.internal'):
        return True
    try:
        ip = ipaddress.ip_address(host)
        if ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_multicast or ip.is_reserved:
            return True
    except ValueError:
        pass
    return False


def validate_source_url(raw_url):
    url = str(raw_url or '').strip()
    if not url:
        raise ContentFetchError('No URL provided')
    if len(url) > MAX_SOURCE_URL_LENGTH:
        raise ContentFetchError('URL is too long')
    try:
        parsed = urlparse(url)
        host = parsed.hostname
    except ValueError:
        raise ContentFetchError('Invalid URL format')
    if parsed.scheme.lower() not in {'http', 'https'} or not host:
        raise ContentFetchError('Invalid URL format')
    if parsed.username or parsed.password:
        raise ContentFetchError('URL credentials are not allowed')
    if is_blocked_hostname(host):
        raise ContentFetchError('This URL host is not allowed')
    return url


def get_with_checked_redirects(url, *, http_get=requests.get, max_redirects=MAX_FETCH_REDIRECTS, **kwargs):
    """GET a URL, following redirects by hand so every hop passes validate_source_url.

    Returns the final URL and its response.
    """
    current_url = url
    for _ in range(max_redirects + 1):
        response = http_get(current_url, allow_redirects=False, **kwargs)
        location = response.headers.get('Location') if response.status_code in REDIRECT_STATUS_CODES else None
        if not location:
            return current_url, response
        response.close()
        current_url = validate_source_url(urljoin(current_url, location))
    raise ContentFetchError('Too many redirects')


def parse_content_length(raw_value):
    try:
        value = int(str(raw_value or '').strip())
    except ValueError:
        return None
    return value if value >= 0 else None


def resolve_pdf_file_name(url, content_disposition=''):
    if content_disposition:
        match = CONTENT_DISPOSITION_FILENAME_RE.search(content_disposition)
        if match:
            name = match.group(1).replace('"', '').replace("'", '').strip()
            if name:
                return os.path.basename(unquote(name))
        return DEFAULT_PDF_FILE_NAME
    last_segment = urlparse(url).path.split('/')[-1]
    if last_segment and last_segment.lower().endswith('.pdf'):
        return unquote(last_segment)
    return DEFAULT_PDF_FILE_NAME


def read_limited(chunks, max_bytes, too_large_message):
    buffer = bytearray()
    for chunk in chunks:
        if not chunk:
            continue
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise ContentFetchError(too_large_message)
    return bytes(buffer)


def fetch_pdf_from_url(url, max_bytes, *, too_large_message, timeout=20, http_get=requests.get):
    try:
        url, response = get_with_checked_redirects(
            url,
            http_get=http_get,
            headers={'User-Agent': PDF_FETCH_USER_AGENT},
            stream=True,
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise ContentFetchError(f'Failed to fetch PDF: {exc.__class__.__name__}') from exc

    with response:
        if not response.ok:
            raise ContentFetchError(f'Failed to fetch PDF: {response.status_code} {response.reason}')

        content_type = str(response.headers.get('Content-Type', '') or '').lower()
        if PDF_MIME_TYPE not in content_type and not url.lower().endswith('.pdf'):
            raise ContentFetchError('URL does not point to a PDF file')

        declared_size = parse_content_length(response.headers.get('Content-Length'))
        if declared_size is not None and declared_size > max_bytes:
            raise ContentFetchError(too_large_message)

        try:
            data = read_limited(response.iter_content(chunk_size=FETCH_CHUNK_SIZE), max_bytes, too_large_message)
        except requests.RequestException as exc:
            raise ContentFetchError(f'Failed to fetch PDF: {exc.__class__.__name__}') from exc
        file_name = resolve_pdf_file_name(url, response.headers.get('Content-Disposition', ''))

    return FetchedFile(data=data, file_name=file_name, size=len(data))


def read_uploaded_pdf(uploaded_file, max_bytes, *, too_large_message):
    if uploaded_file is None or not uploaded_file.filename:
        raise ContentFetchError('No file provided')
    if str(uploaded_file.mimetype or '').lower() != PDF_MIME_TYPE:
        raise ContentFetchError('File must be a PDF')
    # One extra byte tells an exact-limit file apart from an oversized one.
    data = uploaded_file.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ContentFetchError(too_large_message)
    if not data.startswith(PDF_SIGNATURE):
        raise ContentFetchError('File must be a PDF')
    file_name = os.path.basename(uploaded_file.filename.replace('\\', '/')) or DEFAULT_PDF_FILE_NAME
    return FetchedFile(data=data, file_name=file_name, size=len(data))
