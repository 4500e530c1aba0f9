# pySmileP1 Module
# -*- coding: utf-8 -*-
"""
 Python module to interface with the Plugwise Smile P1 energy meter gateway

 For more information see README.md

 Features
    * Works with Smile P1 firmware 2.x and 3.x (and newer)
    * Detects the firmware level and selects the matching meter reading method
    * Normalizes power, gas and per-phase (3-phase meters) readings into one record
    * Finds the local IP address of the Smile through the Plugwise discovery service
    * Uses HTTP Basic auth (smile:<smile ID>), TLS when port 443 is selected

 Classes
    SmileP1(smile_id, host, port, timeout, reversed_polarity, meter_method, poolmaxsize)

 Parameters
    smile_id                  # Short ID of the Smile P1 (e.g. 'hcfrasde'), used as password
    host = DEFAULT_HOST       # Hostname or IP of the Smile, discovered when left at default
    port = 80                 # Port of the Smile, TLS is used for port 443
    timeout = 4               # Timeout for HTTP(S) calls in seconds
    reversed_polarity = False # Swap peak and off-peak counters (regional meter wiring)
    meter_method = None       # Force 1 (firmware 2.x) or 2 (firmware 3.x), detected if None
    poolmaxsize = 4           # Pool max size for http connection re-use

 Functions
    login(**options)          # Discover (if needed) and detect firmware, returns True
    discover(smile_id)        # Lookup the local IP address of the Smile, returns dict
    get_firmware_level()      # Return firmware version string e.g. '3.3.6'
    get_status()              # Return device status (dict, shape depends on firmware)
    get_meter_readings()      # Return MeterReading with power and gas information
    get_logs(query)           # Return historic logs (dict) for a LogQuery
    get_interface_status()    # Return network interface status keyed by name (firmware 3.x)
    get_wifi_scan()           # Return list of wifi access points in range (firmware 3.x)
    reboot()                  # Reboot the Smile (firmware 3.x), logs out the session
    close()                   # Close the http session

 Requirements
    This module requires the following modules: requests, xmltodict, python-dateutil
    pip install requests xmltodict python-dateutil
"""
import dataclasses
import json
import logging
import sys
from typing import Optional, Union

version_tuple = (1, 0, 0)
version = __version__ = '%d.%d.%d' % version_tuple
__author__ = 'pysmilep1'

from pysmilep1.decorators import uses_login_required
from pysmilep1.exceptions import (InvalidConfigurationParameter, NotLoggedInError, SmileConnectionError,
                                  SmileContentTypeError, SmileDiscoveryError, SmileError, SmileHTTPError,
                                  SmileParseError, SmileProtocolError, SmileTimeoutError,
                                  SmileTransportError, SmileUnauthorizedError)
from pysmilep1.firmware import is_v3, parse_firmware_v2, parse_firmware_v3, select_meter_method
from pysmilep1.flatten import flatten, lookup, parse_markup, text
from pysmilep1.models import (DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT, DISCOVERY_PATH, GATEWAY_PATH,
                              INTERFACE_STATUS_PATH, NETWORK_SCAN_PATH, REBOOT_PATH, STATUS_PATH,
                              WIFI_SCAN_TIMEOUT, LoginState, LogQuery, MeterMethod, SessionState,
                              SmileConfig)
from pysmilep1.readings import METER_EXTRACTORS, MeterReading, reverse_polarity
from pysmilep1.transport import TLS_PORT, SmileTransport, TransportResponse

log = logging.getLogger(__name__)
log.debug('%s version %s', __name__, __version__)
log.debug('Python %s on %s', sys.version, sys.platform)

SMILE_USER = "smile"
VENDOR_HEADER_MARK = "Plugwise"


def set_debug(toggle=True, color=True):
    """Enable verbose logging"""
    if toggle:
        if color:
            logging.basicConfig(format='\x1b[31;1m%(levelname)s:%(message)s\x1b[0m', level=logging.DEBUG)
        else:
            logging.basicConfig(format='%(levelname)s:%(message)s', level=logging.DEBUG)
        log.setLevel(logging.DEBUG)
        log.debug("%s [%s]\n" % (__name__, __version__))
    else:
        log.setLevel(logging.NOTSET)


class SmileP1(object):
    def __init__(self, smile_id: Optional[str] = None, host: Optional[str] = DEFAULT_HOST,
                 port: int = DEFAULT_PORT, timeout: float = DEFAULT_TIMEOUT, reversed_polarity: bool = False,
                 meter_method: Optional[Union[MeterMethod, int]] = None, poolmaxsize: int = 4):
        """
        Represents a session with a Plugwise Smile P1 device.

        Args:
            smile_id          = Short ID of the Smile P1 (printed on the device)
            host              = Hostname or IP address of the Smile (e.g. 192.168.1.50)
            port              = Port of the Smile, 443 selects TLS
            timeout           = Seconds for the timeout on http requests
            reversed_polarity = If True, swap peak and off-peak counters in meter readings
            meter_method      = Force MeterMethod.MODULES (1) or DIRECT_OBJECTS (2), skips detection
            poolmaxsize       = Pool max size for http connection re-use
        """
        self.config = SmileConfig(smile_id=smile_id, host=host or DEFAULT_HOST, port=port, timeout=timeout,
                                  reversed_polarity=reversed_polarity, meter_method=meter_method)
        self.state = SessionState()
        self.transport = SmileTransport(timeout=self.config.timeout, poolmaxsize=poolmaxsize)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        return "SmileP1(host=%r, port=%r, firmware=%r, state=%s)" % (
            self.config.host, self.config.port, self.state.firmware_level, self.state.login_state.value)

    # Session properties

    @property
    def host(self) -> Optional[str]:
        return self.config.host

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def logged_in(self) -> bool:
        return self.state.login_state == LoginState.LOGGED_IN

    @property
    def firmware_level(self) -> Optional[str]:
        return self.state.firmware_level

    @property
    def meter_method(self) -> Optional[MeterMethod]:
        # a forced method always wins over detection
        return self.config.meter_method or self.state.meter_method

    @property
    def last_response(self):
        return self.state.last_response

    # Public API

    def login(self, smile_id: Optional[str] = None, host: Optional[str] = None, port: Optional[int] = None,
              timeout: Optional[float] = None) -> bool:
        """
        Login to the Smile P1. Passing options will override the session settings.

        The host is discovered when it is unset or the public rendezvous host.
        A failed login leaves the session logged out and raises the error.
        """
        self.state.login_state = LoginState.LOGGING_IN
        try:
            overrides = {k: v for k, v in {'smile_id': smile_id, 'host': host, 'port': port,
                                           'timeout': timeout}.items() if v}
            if overrides:
                self.config = dataclasses.replace(self.config, **overrides)
            if not self.config.host or self.config.host == DEFAULT_HOST:
                self.discover()
            firmware = self.get_firmware_level()
            self.state.login_state = LoginState.LOGGED_IN
            log.debug('Logged in to Smile at %s:%s - firmware %s' % (self.config.host, self.config.port, firmware))
            return True
        except Exception as exc:
            log.error(f'Login to Smile failed: {exc}')
            self.state.login_state = LoginState.LOGGED_OUT
            raise

    def discover(self, smile_id: Optional[str] = None) -> dict:
        """
        Discover the Smile in your local network (internet connection required)

        Returns the announce information e.g.
            {'product': 'smile', 'version': '3.3.6', 'lan_ip': '', 'wifi_ip': '192.168.1.2', ...}
        """
        smile_id = smile_id or self.config.smile_id
        if not smile_id:
            raise InvalidConfigurationParameter("Discovery requires a smile_id")
        path = "%s/%s.json" % (DISCOVERY_PATH, smile_id)
        try:
            r = self.transport.request(DEFAULT_HOST, TLS_PORT, path, timeout=self.config.timeout, verify=True)
        except SmileTransportError as exc:
            self.state.last_response = exc
            raise
        if r.status_code == 404:
            self.state.last_response = r.status_code
            log.error(f'Discovery of {smile_id} returned 404')
            raise SmileDiscoveryError("Discovery failed possibly due to incorrect ID.")
        if r.status_code != 200:
            self.state.last_response = r.status_code
            raise SmileHTTPError(f"Discovery Failed. Status Code: {r.status_code}", r.status_code)
        self.state.last_response = r.body
        content_type = r.headers.get('content-type') or ''
        if not content_type.startswith('application/json'):
            raise SmileContentTypeError(f"Discovery failed. Expected application/json but received {content_type}")
        try:
            info = json.loads(r.body)
        except ValueError as exc:
            raise SmileParseError(f"Discovery failed. Invalid JSON: {exc}") from exc
        host = lookup(info, ['lan_ip']) or lookup(info, ['wifi_ip'])
        if not host:
            raise SmileDiscoveryError("Discovery failed. No local IP address announced.")
        self.config = dataclasses.replace(self.config, host=host)
        log.debug(f'Discovered Smile {smile_id} at {host}')
        return info

    def get_firmware_level(self) -> Optional[str]:
        """
        Detect the firmware level, e.g. '2.1.13' or '3.3.6'. Works before login.

        The detected meter method follows the result, both are cleared when
        neither probe reports a version.
        """
        firmware = None
        try:
            firmware = parse_firmware_v3(self._request(GATEWAY_PATH, force=True))
        except SmileUnauthorizedError:
            raise
        except SmileProtocolError as exc:
            log.debug(f'No firmware 3 gateway information: {exc}')
        if not firmware:
            firmware = parse_firmware_v2(self._request(STATUS_PATH, force=True))
        if not firmware:
            log.warning('Unable to detect Smile firmware level')
        self.state.firmware_level = firmware
        self.state.meter_method = select_meter_method(firmware)
        return firmware

    @uses_login_required
    def get_status(self) -> dict:
        """Return device status. Shape depends on the firmware level."""
        if not self.state.firmware_level:
            log.warning('Firmware level unknown - no status available')
            return {}
        if is_v3(self.state.firmware_level):
            return self._get_status_v3()
        return self._get_status_v2()

    @uses_login_required
    def get_meter_readings(self) -> MeterReading:
        """Return the power and gas meter readings"""
        method = self.meter_method
        if method is None:
            method = self._get_meter_method()
        if method is None:
            raise SmileParseError("Unable to select a meter method - firmware level unknown")
        path, extract = METER_EXTRACTORS[method]
        reading = extract(self._request(path))
        if self.config.reversed_polarity:
            reading = reverse_polarity(reading)
        return reading

    @uses_login_required
    def get_logs(self, query: Optional[LogQuery] = None, **kwargs) -> dict:
        """
        Return the power and gas log history

        Args:
            query  = LogQuery, or its fields as keyword arguments
                     (log_type, start, end, interval, log_class)
        """
        query = query or LogQuery(**kwargs)
        tree = parse_markup(self._request(query.to_path()))
        location = lookup(tree, ['locations', 'location'])
        if not isinstance(location, dict):
            raise SmileParseError("No location in logs response")
        logs = location.get('logs')
        return flatten(logs) if logs else {}

    @uses_login_required
    def get_interface_status(self) -> dict:
        """Return the network interface status keyed by interface name (firmware 3.x)"""
        tree = parse_markup(self._request(INTERFACE_STATUS_PATH), force_list=('interface',))
        raw = lookup(tree, ['gateways', 'gateway', 'interfaces', 'interface'])
        if not raw:
            raise SmileParseError("No network interfaces in response")
        return {str(i.get('name')): i for i in flatten(raw) if isinstance(i, dict)}

    @uses_login_required
    def get_wifi_scan(self) -> list:
        """Return the wifi access points in range of the Smile (firmware 3.x)"""
        tree = parse_markup(self._request(NETWORK_SCAN_PATH, timeout=WIFI_SCAN_TIMEOUT),
                            force_list=('interface', 'network', 'access_point'))
        interfaces = lookup(tree, ['gateways', 'gateway', 'interfaces', 'interface'])
        if not interfaces or len(interfaces) < 2:
            raise SmileParseError("No wifi interface in scan response")
        networks = lookup(interfaces[1], ['networks', 'network']) or []
        scan = []
        for network in flatten(networks):
            if not isinstance(network, dict):
                continue
            access_points = lookup(network, ['access_points', 'access_point']) or [{}]
            for ap in access_points:
                entry = {'ssid': network.get('ssid')}
                if isinstance(ap, dict):
                    entry.update(ap)
                scan.append(entry)
        return scan

    def reboot(self) -> bool:
        """Reboot the Smile (firmware 3.x). The session is logged out afterwards."""
        try:
            r = self.transport.request(self.config.host, self.config.port, REBOOT_PATH, method='POST',
                                       auth=self._auth(), timeout=self.config.timeout)
        except SmileTransportError as exc:
            self.state.last_response = exc
            raise
        self.state.last_response = r.body
        if not any(VENDOR_HEADER_MARK in str(k) or VENDOR_HEADER_MARK in str(v) for k, v in r.headers.items()):
            log.error(f'Reboot not accepted by Smile (status code {r.status_code})')
            raise SmileProtocolError("Reboot failed")
        self.state.login_state = LoginState.LOGGED_OUT
        return True

    def close(self):
        self.transport.close()

    # Internals

    def _auth(self):
        return SMILE_USER, self.config.smile_id or ''

    def _get_meter_method(self) -> Optional[MeterMethod]:
        self.get_firmware_level()
        return self.state.meter_method

    def _get_status_v2(self) -> dict:
        tree = parse_markup(self._request(STATUS_PATH))
        status = lookup(tree, ['status'])
        if not isinstance(status, dict):
            raise SmileParseError("No status in system status response")
        state = {}
        for key, section in status.items():
            if isinstance(section, dict):
                state[key] = {sub: text(value) for sub, value in section.items()}
            else:
                state[key] = text(section)
        return state

    def _get_status_v3(self) -> dict:
        tree = parse_markup(self._request(GATEWAY_PATH, force=True))
        raw = lookup(tree, ['domain_objects', 'gateway'])
        if not isinstance(raw, dict):
            raise SmileParseError("No gateway in domain_objects response")
        return flatten(raw)

    def _request(self, path: str, force: bool = False, timeout: Optional[float] = None) -> str:
        """
        GET a device path and return the body text

        Args:
            path    = device path
            force   = skip the logged in check (used while logging in)
            timeout = seconds, defaults to the session timeout
        """
        if not self.logged_in and not force:
            raise NotLoggedInError()
        log.debug(' -- smile: Request %s' % path)
        try:
            r = self.transport.request(self.config.host, self.config.port, path, auth=self._auth(),
                                       timeout=timeout or self.config.timeout)
        except SmileTransportError as exc:
            self.state.last_response = exc
            raise
        return self._check_response(r)

    def _check_response(self, r: TransportResponse) -> str:
        self.state.last_response = r.body
        cookie = r.headers.get('set-cookie')
        if cookie:
            self.state.cookie = cookie
        if r.status_code == 401:
            self.state.last_response = r.status_code
            log.error('401 Unauthorized by Smile at %s - check smile ID and IP address' % self.config.host)
            raise SmileUnauthorizedError()
        if r.status_code != 200:
            self.state.last_response = r.status_code
            log.error('HTTP request to Smile at %s failed with status code %s' % (self.config.host, r.status_code))
            raise SmileHTTPError(f"HTTP request Failed. Status Code: {r.status_code}", r.status_code)
        content_type = r.headers.get('content-type') or ''
        if not content_type.startswith('text/'):
            raise SmileContentTypeError(
                f"Invalid content-type. Expected text/xml or text/html but received {content_type}")
        return r.body


__all__ = [
    'SmileP1', 'set_debug', 'version', '__version__',
    'MeterMethod', 'MeterReading', 'LogQuery', 'LoginState', 'SmileConfig', 'SessionState',
    'SmileError', 'NotLoggedInError', 'SmileTransportError', 'SmileConnectionError', 'SmileTimeoutError',
    'SmileProtocolError', 'SmileHTTPError', 'SmileUnauthorizedError', 'SmileContentTypeError',
    'SmileParseError', 'SmileDiscoveryError', 'InvalidConfigurationParameter',
]
