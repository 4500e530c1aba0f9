# pySmileP1 Module - Session Models
# -*- coding: utf-8 -*-
"""
 Configuration, runtime state and query types for a Smile P1 session

 SmileConfig   - immutable connection settings (replaced, never mutated)
 SessionState  - mutable runtime state owned by SmileP1
 LogQuery      - parameters for the historical logs endpoint

 Also holds the connection defaults and the device paths.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Optional, Union

from pysmilep1.exceptions import InvalidConfigurationParameter

DEFAULT_HOST = "connect.plugwise.net"  # public rendezvous host, used for discovery
DEFAULT_PORT = 80
DEFAULT_TIMEOUT = 4  # seconds
WIFI_SCAN_TIMEOUT = 15  # seconds

# Device paths
GATEWAY_PATH = "/core/domain_objects;class=Gateway"  # firmware 3.x and up
STATUS_PATH = "/system/status/xml"  # firmware 2.x
LOGS_PATH = "/core/locations/logs"
INTERFACE_STATUS_PATH = "/core/gateways/network"
NETWORK_SCAN_PATH = "/core/gateways/network;@scan"
REBOOT_PATH = "/core/gateways;@reboot"
DISCOVERY_PATH = "/proxy/auth/announce"  # on DEFAULT_HOST:443


def zulu(value: Union[str, datetime]) -> str:
    """datetime to '2019-07-01T22:00:00.000Z', strings pass through"""
    if isinstance(value, str):
        return value
    utc = value.astimezone(timezone.utc)
    return utc.strftime('%Y-%m-%dT%H:%M:%S.') + '%03dZ' % (utc.microsecond // 1000)


class MeterMethod(IntEnum):
    MODULES = 1  # firmware 2.x - regex over /core/modules
    DIRECT_OBJECTS = 2  # firmware 3.x and up - parsed /core/direct_objects


class LoginState(Enum):
    NEW = "new"
    LOGGING_IN = "logging-in"
    LOGGED_IN = "logged-in"
    LOGGED_OUT = "logged-out"


@dataclass(frozen=True)
class SmileConfig:
    smile_id: Optional[str] = None
    host: Optional[str] = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    reversed_polarity: bool = False
    meter_method: Optional[MeterMethod] = None

    def __post_init__(self):
        if not isinstance(self.port, int) or isinstance(self.port, bool) or not 0 < self.port < 65536:
            raise InvalidConfigurationParameter(f"Invalid port: {self.port!r}")
        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            raise InvalidConfigurationParameter(f"Invalid timeout: {self.timeout!r}")
        if self.meter_method is not None:
            try:
                # frozen - bypass __setattr__ to normalize 1/2 into the enum
                object.__setattr__(self, 'meter_method', MeterMethod(self.meter_method))
            except ValueError:
                raise InvalidConfigurationParameter(
                    f"Invalid meter_method: {self.meter_method!r} (use 1 or 2)") from None


@dataclass
class SessionState:
    login_state: LoginState = LoginState.NEW
    firmware_level: Optional[str] = None
    meter_method: Optional[MeterMethod] = None
    last_response: Any = None
    cookie: Optional[str] = None


@dataclass
class LogQuery:
    """
    Historical log selection

    log_type  = meter type(s) e.g. 'electricity_consumed,electricity_produced,gas_consumed'
    start     = start of logs, zulu string '2019-07-01T22:00:00.000Z' or datetime (default: this month)
    end       = end of logs, zulu string or datetime (default: today)
    interval  = 'P1D', 'PT1H', 'PT15M', 'PT300S', ...
    log_class = 'IntervalLogFunctionality', 'CumulativeLogFunctionality' or 'PointLogFunctionality'
    """
    log_type: Optional[str] = "electricity_consumed"
    start: Optional[Union[str, datetime]] = None
    end: Optional[Union[str, datetime]] = None
    interval: str = "P1D"
    log_class: str = "IntervalLogFunctionality"

    def to_path(self, now: Optional[datetime] = None) -> str:
        today = (now or datetime.now()).replace(hour=0, minute=0, second=0, microsecond=0)
        start = self.start or today.replace(day=1)
        end = self.end or today
        type_string = f"type={self.log_type}" if self.log_type else ""
        return (f"{LOGS_PATH};class:eq:{self.log_class};{type_string};"
                f"@from={zulu(start)};@to={zulu(end)};@interval={self.interval}")
