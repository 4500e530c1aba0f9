# pySmileP1 Module - Transport
# -*- coding: utf-8 -*-
"""
 HTTP(S) transport for the Smile P1 gateway

 Class:
    SmileTransport(timeout, poolmaxsize) - one requests.Session per device session

 Functions:
    request(host, port, path, method, auth, timeout, verify) - run one request
    close() - release pooled connections

 Port 443 selects https, every other port plain http. Network level failures
 are translated into SmileConnectionError / SmileTimeoutError. Status codes
 and content types are left to the caller.
"""
import logging
from typing import NamedTuple, Optional, Tuple

import requests
import urllib3
from requests.structures import CaseInsensitiveDict
from urllib3.exceptions import InsecureRequestWarning

from pysmilep1 import __version__
from pysmilep1.exceptions import SmileConnectionError, SmileTimeoutError

urllib3.disable_warnings(InsecureRequestWarning)  # Smile uses a self-signed certificate

log = logging.getLogger(__name__)

TLS_PORT = 443


class TransportResponse(NamedTuple):
    status_code: int
    headers: CaseInsensitiveDict
    body: str


def build_url(host: str, port: int, path: str) -> str:
    scheme = "https" if port == TLS_PORT else "http"
    return "%s://%s:%s%s" % (scheme, host, port, path)


class SmileTransport:
    def __init__(self, timeout: float = 4, poolmaxsize: int = 4):
        self.timeout = timeout
        self.session = requests.Session()
        # noinspection PyUnresolvedReferences
        a = requests.adapters.HTTPAdapter(pool_maxsize=poolmaxsize)
        self.session.mount('http://', a)
        self.session.mount('https://', a)
        self.session.headers.update({
            'cache-control': 'no-cache',
            'user-agent': 'pysmilep1/%s' % __version__,
            'connection': 'Keep-Alive',
        })

    def request(self, host: str, port: int, path: str, method: str = 'GET',
                auth: Optional[Tuple[str, str]] = None, timeout: Optional[float] = None,
                verify: bool = False) -> TransportResponse:
        """
        Run a single request against the device (or the discovery host)

        Args:
            host    = Hostname or IP address
            port    = TCP port, 443 selects TLS
            path    = Path including any ;-separated matrix parameters
            method  = 'GET' or 'POST'
            auth    = (username, password) tuple for HTTP Basic auth
            timeout = Seconds to wait, falls back to the transport default
            verify  = Verify TLS certificates (https only)

        Returns:
            TransportResponse(status_code, headers, body)
        """
        url = build_url(host, port, path)
        timeout = timeout or self.timeout
        log.debug(' -- transport: %s %s (timeout %ss)' % (method, url, timeout))
        try:
            r = self.session.request(method, url, auth=auth, data=b'' if method == 'POST' else None,
                                     timeout=timeout, verify=verify)
        except requests.exceptions.Timeout as exc:
            log.error('Timeout waiting for %s' % url)
            raise SmileTimeoutError(f"Timeout after {timeout}s waiting for {url}") from exc
        except requests.exceptions.RequestException as exc:
            log.error(f'Unable to connect to {url}: {exc}')
            raise SmileConnectionError(f"Unable to connect to {url}: {exc}") from exc
        log.debug(f' -- transport: {r.status_code} {r.headers.get("content-type")}')
        return TransportResponse(r.status_code, r.headers, r.text)

    def close(self):
        self.session.close()
