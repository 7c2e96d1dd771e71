"""HTTP download of a single artifact location.

Redirects are followed by hand rather than by httpx so that the handled
status codes and the hop limit stay exactly as documented:

* ``2xx`` is success;
* ``300``-``307`` except ``304`` and ``306`` with a ``Location`` header is
  followed, at most ``max_redirects`` times;
* ``< 200`` and ``>= 400`` fail the location with :class:`HttpStatusError`;
* anything else (``304``, ``306``, ``308``, a redirect without ``Location``)
  is read as the response body.
"""
from __future__ import annotations

import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional

import httpx

from ..config import ChecksumMode, DownloadConfig
from ..exceptions import (
    ChecksumMismatchError,
    DownloadError,
    HttpStatusError,
    IncompleteDownloadError,
    TooManyRedirectsError,
)
from ..utils import interrupts
from ..utils.io import ensure_directory, remove_quietly

logger = logging.getLogger(__name__)

REDIRECT_STATUS_CODES = frozenset(range(300, 308)) - {304, 306}
CHECKSUM_ALGORITHMS = ("sha512", "sha256", "sha1", "md5")

_HEX = re.compile(r"[0-9a-fA-F]+")
_USER_AGENT = "embedded-cassandra"


def parse_checksum(body: str) -> Optional[str]:
    """Extract the hex digest from a published checksum file.

    Understands both ``<hex>  <file>`` and the ``<file>: AB CD ...`` layout
    produced by ``gpg --print-md``.
    """
    text = body.strip()
    if not text:
        return None
    head = text.split()[0]
    if _HEX.fullmatch(head):
        return head.lower()
    if ":" in text:
        digits = "".join(text.split(":", 1)[1].split())
        if _HEX.fullmatch(digits):
            return digits.lower()
    return None


def _content_length(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value >= 0 else None


def _file_digest(path: Path, algorithm: str, chunk_size: int) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as fh:
        for block in iter(lambda: fh.read(chunk_size), b""):
            digest.update(block)
    return digest.hexdigest()


class HttpDownloader:
    """Download one URL to a local file, verifying size and (optionally) checksum.

    Args:
        connect_timeout: Seconds allowed for establishing the connection.
        read_timeout: Seconds allowed between received bytes.
        proxy: Optional proxy URL (``http://host:port``).
        max_redirects: Redirect hops followed before ``TooManyRedirectsError``.
        checksum: How to treat a missing published checksum.
        transport: Custom httpx transport (tests use ``httpx.MockTransport``).

    Unset options fall back to the ``download`` configuration section.
    """

    def __init__(
        self,
        *,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        max_redirects: Optional[int] = None,
        checksum: Optional[ChecksumMode | str] = None,
        progress_step_percent: Optional[int] = None,
        chunk_size: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
        config: Optional[DownloadConfig] = None,
    ) -> None:
        cfg = config or DownloadConfig()
        self.connect_timeout = cfg.connect_timeout_seconds if connect_timeout is None else float(connect_timeout)
        self.read_timeout = cfg.read_timeout_seconds if read_timeout is None else float(read_timeout)
        self.proxy = cfg.proxy if proxy is None else proxy
        self.max_redirects = cfg.max_redirects if max_redirects is None else int(max_redirects)
        self.checksum = ChecksumMode(checksum) if checksum is not None else cfg.checksum
        self.progress_step_percent = (
            cfg.progress_step_percent if progress_step_percent is None else int(progress_step_percent)
        )
        self.chunk_size = cfg.chunk_size if chunk_size is None else int(chunk_size)
        self._transport = transport

    def _client(self) -> httpx.Client:
        timeout = httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.read_timeout,
            pool=self.connect_timeout,
        )
        kwargs = {
            "timeout": timeout,
            "follow_redirects": False,
            # identity keeps the streamed byte count comparable to Content-Length
            "headers": {"User-Agent": _USER_AGENT, "Accept-Encoding": "identity"},
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif self.proxy:
            kwargs["proxy"] = self.proxy
        return httpx.Client(**kwargs)

    # ---------- Public API ----------

    def download(self, url: str, target: Path) -> Path:
        """Download ``url`` to ``target`` atomically.

        Raises:
            DownloadError: Any failure of this location (including the
                ``TooManyRedirectsError``, ``IncompleteDownloadError``,
                ``HttpStatusError`` and ``ChecksumMismatchError`` subclasses).
            ThreadInterruptedError: The calling thread was interrupted.
        """
        target = Path(target)
        ensure_directory(target.parent)
        with self._client() as client:
            tmp_path = self._fetch_to_temp(client, url, target)
            try:
                if self.checksum is not ChecksumMode.DISABLED:
                    self._verify_checksum(client, url, tmp_path)
                os.replace(tmp_path, target)
            except BaseException:
                remove_quietly(tmp_path)
                raise
        return target

    # ---------- Internals ----------

    def open(self, client: httpx.Client, url: str) -> httpx.Response:
        """Send GET requests until a non-redirect response; the caller closes it."""
        current = url
        for _ in range(self.max_redirects + 1):
            interrupts.check_interrupted()
            try:
                response = client.send(client.build_request("GET", current), stream=True)
            except httpx.TimeoutException as exc:
                raise DownloadError(f"Timed out connecting to {current}: {exc}", url=current) from exc
            except httpx.HTTPError as exc:
                raise DownloadError(f"Could not connect to {current}: {exc}", url=current) from exc

            status = response.status_code
            if 200 <= status < 300:
                return response
            if status in REDIRECT_STATUS_CODES:
                location = response.headers.get("location")
                if location:
                    response.close()
                    next_url = str(response.url.join(location))
                    logger.debug("Redirect %d: %s -> %s", status, current, next_url)
                    current = next_url
                    continue
                return response
            if status < 200 or status >= 400:
                reason = response.reason_phrase
                response.close()
                raise HttpStatusError(current, status, reason)
            return response
        raise TooManyRedirectsError(url, self.max_redirects)

    def _fetch_to_temp(self, client: httpx.Client, url: str, target: Path) -> Path:
        response = self.open(client, url)
        total = _content_length(response)
        written = 0
        step = max(self.progress_step_percent, 1)
        next_report = step
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "wb",
                dir=str(target.parent),
                prefix=f".{target.name}.",
                suffix=".part",
                delete=False,
            ) as fh:
                tmp_path = Path(fh.name)
                if total is None:
                    logger.debug("Size of %s is unknown; progress will not be reported", url)
                try:
                    for chunk in response.iter_bytes(self.chunk_size):
                        interrupts.check_interrupted()
                        fh.write(chunk)
                        written += len(chunk)
                        if total:
                            percent = written * 100 // total
                            if percent >= next_report:
                                logger.info("Downloaded %d / %d bytes (%d%%) from %s", written, total, percent, url)
                                next_report = (percent // step + 1) * step
                except httpx.HTTPError as exc:
                    if total is not None and written < total:
                        raise IncompleteDownloadError(url, total, written) from exc
                    raise DownloadError(f"Failed to read {url}: {exc}", url=url) from exc
            if total is not None and written != total:
                raise IncompleteDownloadError(url, total, written)
            logger.info("Downloaded %d bytes from %s", written, url)
            return tmp_path
        except BaseException:
            if tmp_path is not None:
                remove_quietly(tmp_path)
            raise
        finally:
            response.close()

    def _fetch_checksum(self, client: httpx.Client, url: str) -> Optional[tuple[str, str]]:
        for algorithm in CHECKSUM_ALGORITHMS:
            checksum_url = f"{url}.{algorithm}"
            try:
                response = self.open(client, checksum_url)
            except DownloadError as exc:
                logger.debug("No %s checksum at %s: %s", algorithm, checksum_url, exc)
                continue
            try:
                if not 200 <= response.status_code < 300:
                    continue
                response.read()
                expected = parse_checksum(response.text)
            except httpx.HTTPError as exc:
                logger.debug("Could not read %s: %s", checksum_url, exc)
                continue
            finally:
                response.close()
            if expected:
                return algorithm, expected
        return None

    def _verify_checksum(self, client: httpx.Client, url: str, path: Path) -> None:
        published = self._fetch_checksum(client, url)
        if published is None:
            if self.checksum is ChecksumMode.REQUIRED:
                raise DownloadError(f"No checksum published for {url}", url=url)
            logger.warning("No checksum published for %s; skipping verification", url)
            return
        algorithm, expected = published
        actual = _file_digest(path, algorithm, self.chunk_size)
        if actual != expected:
            raise ChecksumMismatchError(url, algorithm, expected, actual)
        logger.info("Verified %s checksum of %s", algorithm, url)


__all__ = ["HttpDownloader", "REDIRECT_STATUS_CODES", "CHECKSUM_ALGORITHMS", "parse_checksum"]
