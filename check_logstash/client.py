"""
check_logstash/client.py — HTTP access to the Logstash monitoring API.

Thin urllib wrapper: builds the base URL from Settings, sets up TLS
(CA file, client certificate, skip-verify) and injects bearer or basic
authentication. Exactly one GET per plugin run; no retries.
"""

from __future__ import annotations

import base64
import http.client
import logging
import ssl
import urllib.error
import urllib.parse
import urllib.request
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger(__name__)

NODE_STATS_PATH = "/_node/stats"
PIPELINE_STATS_PATH = "/_node/stats/pipelines"


class ConfigError(ValueError):
    """Invalid or incomplete plugin configuration, detected before any request."""


class TransportError(Exception):
    """The API could not be reached (refused, DNS, TLS, timeout)."""


class HTTPStatusError(Exception):
    """The API answered with something other than 200 OK."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"could not get {url} - Error: {status}")
        self.url = url
        self.status = status


def pipeline_path(name: str = "/") -> str:
    """API path for one pipeline, or for all of them when *name* is empty or "/"."""
    name = (name or "").strip("/")
    if not name:
        return PIPELINE_STATS_PATH + "/"
    return f"{PIPELINE_STATS_PATH}/{urllib.parse.quote(name, safe='')}"


def build_ssl_context(cfg: Settings) -> ssl.SSLContext:
    if cfg.KEY_FILE and not cfg.CERT_FILE:
        raise ConfigError("a key file requires a certificate file (--cert-file)")
    try:
        context = ssl.create_default_context(cafile=cfg.CA_FILE)
        if cfg.CERT_FILE:
            context.load_cert_chain(cfg.CERT_FILE, keyfile=cfg.KEY_FILE)
    except (OSError, ssl.SSLError) as exc:
        raise ConfigError(f"could not load TLS configuration: {exc}") from exc
    if cfg.INSECURE:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def build_headers(cfg: Settings) -> dict[str, str]:
    headers = {"Accept": "application/json"}
    if cfg.BEARER:
        headers["Authorization"] = f"Bearer {cfg.BEARER}"
    credentials = cfg.basic_auth_credentials
    if credentials:
        token = base64.b64encode(":".join(credentials).encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {token}"
    return headers


class LogstashClient:
    def __init__(self, cfg: Settings) -> None:
        self.base_url = cfg.base_url
        self.timeout = cfg.TIMEOUT
        self.headers = build_headers(cfg)
        handlers: list[urllib.request.BaseHandler] = []
        if cfg.SECURE:
            handlers.append(urllib.request.HTTPSHandler(context=build_ssl_context(cfg)))
        self._opener = urllib.request.build_opener(*handlers)

    def url_for(self, path: str) -> str:
        return self.base_url + path

    def get(self, path: str) -> bytes:
        """GET *path* and return the raw body of a 200 response."""
        url = self.url_for(path)
        request = urllib.request.Request(url, headers=self.headers, method="GET")
        logger.debug("GET %s (timeout %ss)", url, self.timeout)
        try:
            with self._opener.open(request, timeout=self.timeout) as resp:
                status = resp.status
                body = resp.read()
        except urllib.error.HTTPError as exc:
            logger.debug("GET %s returned %s", url, exc.code)
            raise HTTPStatusError(url, exc.code) from exc
        except urllib.error.URLError as exc:
            raise TransportError(f'Get "{url}": {exc.reason}') from exc
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(f'Get "{url}": {exc}') from exc

        logger.debug("GET %s returned %s (%d bytes)", url, status, len(body))
        if status != 200:
            raise HTTPStatusError(url, status)
        return body
