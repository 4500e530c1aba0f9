# pySmileP1 Module - Exceptions
# -*- coding: utf-8 -*-
"""
 Exceptions raised by the pySmileP1 module

 SmileError
    NotLoggedInError                # Operation attempted before a successful login
    SmileTransportError             # Network level failure
        SmileConnectionError        #   refused, reset, unresolvable host
        SmileTimeoutError           #   no answer within the request timeout
    SmileProtocolError              # Device answered, but not as expected
        SmileHTTPError              #   non-200 status code
            SmileUnauthorizedError  #   401 - wrong smile ID or wrong IP
        SmileContentTypeError       #   unexpected content-type
    SmileParseError                 # Expected tag or attribute missing
        SmileDiscoveryError         #   discovery could not resolve the ID
    InvalidConfigurationParameter   # Bad constructor argument
"""
from typing import Optional


class SmileError(Exception):
    pass


class NotLoggedInError(SmileError):
    def __init__(self, msg="Not logged in"):
        super().__init__(msg)


class SmileTransportError(SmileError):
    pass


class SmileConnectionError(SmileTransportError):
    pass


class SmileTimeoutError(SmileTransportError):
    pass


class SmileProtocolError(SmileError):
    pass


class SmileHTTPError(SmileProtocolError):
    def __init__(self, msg: str, status_code: Optional[int] = None):
        super().__init__(msg)
        self.status_code = status_code


class SmileUnauthorizedError(SmileHTTPError):
    def __init__(self, msg="401 Unauthorized (wrong smileId or wrong IP)"):
        super().__init__(msg, status_code=401)


class SmileContentTypeError(SmileProtocolError):
    pass


class SmileParseError(SmileError):
    pass


class SmileDiscoveryError(SmileParseError):
    pass


class InvalidConfigurationParameter(SmileError, ValueError):
    pass
