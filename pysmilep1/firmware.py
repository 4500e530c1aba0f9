# pySmileP1 Module - Firmware Detection
# -*- coding: utf-8 -*-
"""
 Firmware level helpers

 Functions:
    parse_firmware_v3(markup)       # <firmware_version> from /core/domain_objects;class=Gateway
    parse_firmware_v2(markup)       # <version> from /system/status/xml
    select_meter_method(firmware)   # MeterMethod for a firmware string, or None
    is_v3(firmware)                 # True for firmware 3.x and up
"""
import re
from typing import Optional

from pysmilep1.models import MeterMethod

FW3_REGEX = re.compile(r"<firmware_version>(.*?)</firmware_version>")
FW2_REGEX = re.compile(r"<version>(.*?)</version>")


def _search(regex, markup) -> Optional[str]:
    if not isinstance(markup, str):
        return None
    match = regex.search(markup)
    if match:
        return match.group(1)
    return None


def parse_firmware_v3(markup: str) -> Optional[str]:
    return _search(FW3_REGEX, markup)


def parse_firmware_v2(markup: str) -> Optional[str]:
    return _search(FW2_REGEX, markup)


def select_meter_method(firmware: Optional[str]) -> Optional[MeterMethod]:
    """
    Pick the reading extractor for a firmware string.

    Only the leading character is compared ('2.1.13' -> MODULES,
    '3.3.6' -> DIRECT_OBJECTS). A two-digit major such as '10.1' compares
    as '1' and selects MODULES.
    """
    if not isinstance(firmware, str) or not firmware:
        return None
    if firmware[0] <= '2':
        return MeterMethod.MODULES
    return MeterMethod.DIRECT_OBJECTS


def is_v3(firmware: Optional[str]) -> bool:
    if not isinstance(firmware, str) or not firmware:
        return False
    return firmware[0] >= '3'
