# pySmileP1 Module - Command Line
# -*- coding: utf-8 -*-
"""
 Python module to interface with the Plugwise Smile P1 energy meter gateway

 Command Line:
    python -m pysmilep1 <command> [-id ID] [-host HOST] [-port PORT] ...

 Commands:
    discover, login, readings, status, interfaces, wifiscan, logs, test, reboot, version

 Connection defaults are read from the environment (or a .env file):
    SMILE_ID, SMILE_HOST, SMILE_PORT, SMILE_TIMEOUT, SMILE_REVERSED
"""
import argparse
import json
import os
import platform
import sys
import time

import dotenv

from pysmilep1 import LogQuery, SmileError, SmileP1, set_debug, version
from pysmilep1.models import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT
from pysmilep1.readings import MeterReading


def build_parser() -> argparse.ArgumentParser:
    # Connection arguments shared by all device commands
    conn = argparse.ArgumentParser(add_help=False)
    conn.add_argument("-id", type=str, default=os.getenv("SMILE_ID"), help="Smile ID e.g. hcfrasde")
    conn.add_argument("-host", type=str, default=os.getenv("SMILE_HOST", DEFAULT_HOST),
                      help="IP address of the Smile [Default=discover]")
    conn.add_argument("-port", type=int, default=int(os.getenv("SMILE_PORT", DEFAULT_PORT)),
                      help=f"Port of the Smile, 443 for TLS [Default={DEFAULT_PORT}]")
    conn.add_argument("-timeout", type=float, default=float(os.getenv("SMILE_TIMEOUT", DEFAULT_TIMEOUT)),
                      help=f"Seconds to wait per request [Default={DEFAULT_TIMEOUT}]")
    conn.add_argument("-reversed", action="store_true",
                      default=os.getenv("SMILE_REVERSED", "false").lower() in ("1", "true", "yes"),
                      help="Swap peak and off-peak counters")
    conn.add_argument("-method", type=int, choices=[1, 2], default=None,
                      help="Force meter method: 1 (firmware 2.x) or 2 (firmware 3.x)")
    conn.add_argument("-format", type=str, default="text", help="Output format: text, json")

    p = argparse.ArgumentParser(prog="pySmileP1", description=f"pySmileP1 Module v{version}")
    subparsers = p.add_subparsers(dest="command", title='commands (run <command> -h to see usage information)',
                                  required=True)
    subparsers.add_parser("discover", parents=[conn], help='Lookup the local IP address of the Smile')
    subparsers.add_parser("login", parents=[conn], help='Login and show firmware level')
    subparsers.add_parser("readings", parents=[conn], help='Get power and gas meter readings')
    subparsers.add_parser("status", parents=[conn], help='Get device status')
    subparsers.add_parser("interfaces", parents=[conn], help='Get network interface status (firmware 3.x)')
    subparsers.add_parser("wifiscan", parents=[conn], help='Scan for wifi access points (firmware 3.x)')
    logs_args = subparsers.add_parser("logs", parents=[conn], help='Get historic logs')
    logs_args.add_argument("-type", type=str, default="electricity_consumed",
                           help="Meter type(s) e.g. electricity_consumed,electricity_produced,gas_consumed")
    logs_args.add_argument("-start", type=str, default=None, help="Start in zulu time [Default=this month]")
    logs_args.add_argument("-end", type=str, default=None, help="End in zulu time [Default=today]")
    logs_args.add_argument("-interval", type=str, default="P1D", help="Interval e.g. P1D, PT1H, PT15M")
    logs_args.add_argument("-logclass", type=str, default="IntervalLogFunctionality",
                           help="Log class e.g. IntervalLogFunctionality, PointLogFunctionality")
    subparsers.add_parser("test", parents=[conn], help='Run all read functions and report errors')
    subparsers.add_parser("reboot", parents=[conn], help='Reboot the Smile (firmware 3.x)')
    subparsers.add_parser("version", help='Print version information')

    # Add a global debug flag
    p.add_argument("-debug", action="store_true", default=False, help="Enable debug output")
    return p


def output(data, fmt="text"):
    if isinstance(data, MeterReading):
        data = data.as_dict()
    if fmt == 'json' or not isinstance(data, dict):
        print(json.dumps(data, indent=2, default=str))
        return
    # Table Output
    for item in data:
        name = item.replace("_", " ").title()
        value = data[item]
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        print("  {:<22}{}".format(name, value))
    print("")


def run_test(smile: SmileP1) -> list:
    """Run every read function once, collecting results and errors in a log"""
    log = ['========== STARTING TEST ==========',
           f'Python version: {platform.python_version()}',
           f'pySmileP1 package version: {version}',
           f'OS: {platform.system()} {platform.release()}']
    errors = 0
    t0 = time.perf_counter()

    def step(title, func):
        nonlocal errors
        log.append(f'trying to {title}...')
        try:
            result = func()
            log.append(result.as_dict() if isinstance(result, MeterReading) else result)
        except SmileError as exc:
            log.append(str(exc))
            errors += 1
        log.append(f't = {time.perf_counter() - t0:.3f}')

    step('discover Smile', smile.discover)
    log.append('trying to login...')
    try:
        log.append(smile.login())
    except SmileError as exc:
        log.append(str(exc))
        log.append(repr(smile))
        log.append('test aborted: login failed')
        return log
    log.append(f't = {time.perf_counter() - t0:.3f}')
    step('get device info', smile.get_status)
    step('get network interface status', smile.get_interface_status)
    step('get wifi scan info', smile.get_wifi_scan)
    step('get historic Power log of present month',
         lambda: smile.get_logs(LogQuery(log_type='electricity_consumed,electricity_produced')))
    step('get historic Gas log of present month', lambda: smile.get_logs(LogQuery(log_type='gas_consumed')))
    step('get meter readings', smile.get_meter_readings)
    log.append(repr(smile))
    if errors:
        log.append(f'test finished with {errors} errors')
    else:
        log.append('test finished without errors :)')
    return log


def main(argv=None) -> int:
    dotenv.load_dotenv()
    p = build_parser()
    if argv is None and len(sys.argv) == 1:
        p.print_help(sys.stderr)
        return 1
    args = p.parse_args(argv)
    command = args.command

    # Set Debug Mode
    if args.debug:
        set_debug(True)

    if command == 'version':
        print("pySmileP1 [%s]" % version)
        return 0

    smile = SmileP1(args.id, host=args.host, port=args.port, timeout=args.timeout,
                    reversed_polarity=args.reversed, meter_method=args.method)
    try:
        if command == 'discover':
            output(smile.discover(), args.format)
        elif command == 'test':
            for line in run_test(smile):
                print(line)
        elif command == 'reboot':
            smile.login()
            smile.reboot()
            print("Reboot started")
        else:
            smile.login()
            if command == 'login':
                output({'host': smile.host, 'port': smile.port, 'firmware': smile.firmware_level,
                        'meter_method': smile.meter_method}, args.format)
            elif command == 'readings':
                output(smile.get_meter_readings(), args.format)
            elif command == 'status':
                output(smile.get_status(), args.format)
            elif command == 'interfaces':
                output(smile.get_interface_status(), args.format)
            elif command == 'wifiscan':
                output(smile.get_wifi_scan(), args.format)
            elif command == 'logs':
                output(smile.get_logs(LogQuery(log_type=args.type, start=args.start, end=args.end,
                                               interval=args.interval, log_class=args.logclass)), args.format)
    except SmileError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        smile.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
