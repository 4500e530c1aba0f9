# pySmileP1 Module - Meter Readings
# -*- coding: utf-8 -*-
"""
 Meter reading extraction for the two Smile P1 firmware generations

 Classes:
    MeterReading                            # flat record, absent fields are None

 Functions:
    extract_modules_readings(markup)        # MeterMethod.MODULES (firmware 2.x)
    extract_direct_objects_readings(markup) # MeterMethod.DIRECT_OBJECTS (firmware 3.x+)
    reverse_polarity(reading)               # swap peak and off-peak counters

 MeterReading fields
    pwr         # power meter total (consumption - production) in Watt. e.g. 646
    l1, l2, l3  # net power per phase in Watt (3-phase meters only)
    v1, v2, v3  # voltage per phase in Volt (3-phase meters only)
    i1, i2, i3  # current per phase in Ampere, l / v rounded to 2 decimals
    net         # net energy (consumption - production) in kWh. e.g. 7507.336
    p1          # P1 consumption counter (low tariff) in kWh
    p2          # P2 consumption counter (high tariff) in kWh
    n1          # N1 production counter (low tariff) in kWh
    n2          # N2 production counter (high tariff) in kWh
    tm          # time of the power reading, unix seconds
    gas         # gas meter counter in m3
    gtm         # time of the last gas measurement, unix seconds
"""
import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from dateutil.parser import isoparse

from pysmilep1.exceptions import SmileParseError
from pysmilep1.flatten import ATTR_PREFIX, lookup, parse_markup, text
from pysmilep1.models import MeterMethod

log = logging.getLogger(__name__)

OFFPEAK = "nl_offpeak"
PEAK = "nl_peak"
TARIFF_ATTRIBUTES = ("tariff_indicator", "tariff")
PHASES = (("one", 1), ("two", 2), ("three", 3))

# firmware 2.x /core/modules markup uses single quoted attributes
REGEX_POWER = re.compile(r"unit='W' directionality='consumed'>(.*?)</measurement>")
REGEX_POWER_PRODUCED = re.compile(r"unit='W' directionality='produced'>(.*?)</measurement>")
REGEX_PEAK = re.compile(r"unit='Wh' directionality='consumed' tariff_indicator='nl_peak'>(.*?)</measurement>")
REGEX_OFFPEAK = re.compile(r"unit='Wh' directionality='consumed' tariff_indicator='nl_offpeak'>(.*?)</measurement>")
REGEX_PEAK_PRODUCED = re.compile(
    r"unit='Wh' directionality='produced' tariff_indicator='nl_peak'>(.*?)</measurement>")
REGEX_OFFPEAK_PRODUCED = re.compile(
    r"unit='Wh' directionality='produced' tariff_indicator='nl_offpeak'>(.*?)</measurement>")
REGEX_GAS = re.compile(r"unit='m3' directionality='consumed'>(.*?)</measurement>")
REGEX_POWER_TM = re.compile(
    r"<measurement log_date='(.*?)' unit='Wh' directionality='consumed' tariff_indicator='nl_offpeak'>")
REGEX_GAS_TM = re.compile(r"<measurement log_date='(.*?)' unit='m3' directionality='consumed'>")


@dataclass
class MeterReading:
    pwr: Optional[float] = None
    l1: Optional[float] = None
    l2: Optional[float] = None
    l3: Optional[float] = None
    v1: Optional[float] = None
    v2: Optional[float] = None
    v3: Optional[float] = None
    i1: Optional[float] = None
    i2: Optional[float] = None
    i3: Optional[float] = None
    net: Optional[float] = None
    p1: Optional[float] = None
    p2: Optional[float] = None
    n1: Optional[float] = None
    n2: Optional[float] = None
    tm: Optional[int] = None
    gas: Optional[float] = None
    gtm: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in dataclasses.asdict(self).items() if v is not None}


def net_energy(p1: float, p2: float, n1: float, n2: float) -> float:
    return round(p2 + p1 - n2 - n1, 4)


def unix_time(timestamp: str) -> int:
    """ISO 8601 device time e.g. '2019-02-03T12:00:00+01:00' to unix seconds"""
    return int(isoparse(str(timestamp)).timestamp())


def reverse_polarity(reading: MeterReading) -> MeterReading:
    return dataclasses.replace(reading, p1=reading.p2, p2=reading.p1, n1=reading.n2, n2=reading.n1)


# MODULES (firmware 2.x)

def _match(regex, markup: str) -> Optional[str]:
    m = regex.search(markup)
    return m.group(1) if m else None


def _modules_power(markup: str) -> Optional[Dict[str, Any]]:
    found = [_match(regex, markup) for regex in (REGEX_POWER, REGEX_POWER_PRODUCED, REGEX_PEAK,
                                                 REGEX_OFFPEAK, REGEX_PEAK_PRODUCED,
                                                 REGEX_OFFPEAK_PRODUCED, REGEX_POWER_TM)]
    if None in found:
        log.debug('No power readings available')
        return None
    try:
        power, produced, peak, offpeak, peak_produced, offpeak_produced = (float(v) for v in found[:6])
        tm = unix_time(found[6])
    except ValueError as exc:
        log.debug(f'Unable to parse power readings: {exc}')
        return None
    p2, p1, n2, n1 = peak / 1000, offpeak / 1000, peak_produced / 1000, offpeak_produced / 1000
    return {'pwr': power - produced, 'net': net_energy(p1, p2, n1, n2),
            'p2': p2, 'p1': p1, 'n2': n2, 'n1': n1, 'tm': tm}


def _modules_gas(markup: str) -> Optional[Dict[str, Any]]:
    gas, gtm = _match(REGEX_GAS, markup), _match(REGEX_GAS_TM, markup)
    if gas is None or gtm is None:
        log.debug('No gas readings available')
        return None
    try:
        return {'gas': float(gas), 'gtm': unix_time(gtm)}
    except ValueError as exc:
        log.debug(f'Unable to parse gas readings: {exc}')
        return None


def extract_modules_readings(markup: str) -> MeterReading:
    """Readings from the raw /core/modules markup of firmware 2.x"""
    if not isinstance(markup, str):
        raise SmileParseError('Error parsing meter info')
    power = _modules_power(markup)
    gas = _modules_gas(markup)
    if power is None and gas is None:
        log.error('Neither power nor gas readings found in modules response')
        raise SmileParseError('Error parsing meter info')
    return MeterReading(**(power or {}), **(gas or {}))


# DIRECT_OBJECTS (firmware 3.x and up)

def _measurements(log_entry: dict) -> List[Any]:
    measurement = lookup(log_entry, ['period', 'measurement'])
    if measurement is None:
        return []
    if isinstance(measurement, list):
        return measurement
    return [measurement]


def _tariff_value(log_entry: dict, tariff: str) -> float:
    for m in _measurements(log_entry):
        if isinstance(m, dict) and any(m.get(ATTR_PREFIX + a) == tariff for a in TARIFF_ATTRIBUTES):
            return float(text(m))
    raise SmileParseError(f"No {tariff} measurement in {log_entry.get('type')} log")


def _present_value(log_entry: dict) -> float:
    # a tariff split reports two measurements, summed into one present value
    values = [text(m) for m in _measurements(log_entry)]
    if not values or None in values:
        raise SmileParseError(f"No measurement in {log_entry.get('type')} log")
    return float(sum(float(v) for v in values))


def _logs_by_type(logs: dict, kind: str) -> Dict[str, dict]:
    entries = logs.get(kind) or []
    if isinstance(entries, dict):
        entries = [entries]
    return {e.get('type'): e for e in entries if isinstance(e, dict)}


def extract_direct_objects_readings(markup: str) -> MeterReading:
    """Readings from the parsed /core/direct_objects tree of firmware 3.x and up"""
    tree = parse_markup(markup, force_list=('cumulative_log', 'point_log'))
    logs = lookup(tree, ['direct_objects', 'location', 'logs'])
    if not isinstance(logs, dict):
        log.error('No location logs found in direct_objects response')
        raise SmileParseError('Error parsing meter info: no location logs')
    cumulative = _logs_by_type(logs, 'cumulative_log')
    point = _logs_by_type(logs, 'point_log')
    reading = MeterReading()

    try:
        consumed = cumulative.get('electricity_consumed')
        produced = cumulative.get('electricity_produced')
        # accumulators, only used for net
        p1 = p2 = n1 = n2 = 0.0
        if produced:
            n1 = reading.n1 = _tariff_value(produced, OFFPEAK) / 1000
            n2 = reading.n2 = _tariff_value(produced, PEAK) / 1000
        if consumed:
            p1 = reading.p1 = _tariff_value(consumed, OFFPEAK) / 1000
            p2 = reading.p2 = _tariff_value(consumed, PEAK) / 1000
            reading.tm = unix_time(consumed['updated_date'])
            reading.net = net_energy(p1, p2, n1, n2)
        gas = cumulative.get('gas_consumed')
        if gas:
            reading.gas = _present_value(gas)
            reading.gtm = unix_time(gas['updated_date'])

        power = point.get('electricity_consumed')
        power_produced = point.get('electricity_produced')
        if power or power_produced:
            reading.pwr = ((_present_value(power) if power else 0)
                           - (_present_value(power_produced) if power_produced else 0))

        for word, n in PHASES:
            phase_consumed = point.get(f'electricity_phase_{word}_consumed')
            phase_produced = point.get(f'electricity_phase_{word}_produced')
            voltage = point.get(f'voltage_phase_{word}')
            phase_power = None
            if phase_consumed or phase_produced:
                phase_power = ((_present_value(phase_consumed) if phase_consumed else 0)
                               - (_present_value(phase_produced) if phase_produced else 0))
                setattr(reading, f'l{n}', phase_power)
            if voltage:
                volts = _present_value(voltage)
                setattr(reading, f'v{n}', volts)
                if phase_power is not None and volts:
                    setattr(reading, f'i{n}', round(phase_power / volts, 2))
    except (KeyError, TypeError, ValueError) as exc:
        log.error(f'Unable to parse direct_objects response: {exc}')
        raise SmileParseError(f'Error parsing meter info: {exc}') from exc

    if reading.tm is None and reading.gtm is None:
        log.error('Neither power nor gas readings found in direct_objects response')
        raise SmileParseError('Error parsing meter info')
    return reading


# Reading extractor and source path per meter method
METER_EXTRACTORS: Dict[MeterMethod, Tuple[str, Callable[[str], MeterReading]]] = {
    MeterMethod.MODULES: ('/core/modules', extract_modules_readings),
    MeterMethod.DIRECT_OBJECTS: ('/core/direct_objects', extract_direct_objects_readings),
}
