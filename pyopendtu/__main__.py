# pyOpenDTU Module - Command Line
# -*- coding: utf-8 -*-
"""
 Python module to read OpenDTU solar inverter data and render a status widget

 Command Line:
    python -m pyopendtu <widget|setup|version>

 Environment (or .env file)
    DTU_CONFIG_PATH   # Directory of the shared settings file
    DTU_LOCAL_PATH    # Directory of the local settings copy (optional)
    DTU_CACHE_PATH    # Directory of the cache file
    DTU_TIMEOUT       # Seconds to wait for the device [Default=10]
    DTU_DEBUG         # yes/no
"""
import argparse
import os
import sys

import dotenv

from pyopendtu import OpenDTU, HARD_FAIL, StorageFailure, set_debug, version
from pyopendtu.widget import SIZES, present, render_error

SECRET_KEYS = ["dtuPass", "tasmotaPass", "shellyPass"]


def build_parser(timeout):
    p = argparse.ArgumentParser(prog="pyOpenDTU", description=f"pyOpenDTU Module v{version}")
    subparsers = p.add_subparsers(dest="command", title='commands (run <command> -h to see usage information)',
                                  required=True)

    widget_args = subparsers.add_parser("widget", help='Fetch OpenDTU data and render the widget')
    widget_args.add_argument("-size", type=str, default="small", choices=SIZES,
                             help="Widget size: small or medium [Default=small]")
    widget_args.add_argument("-output", type=str, default=None,
                             help="Write the widget to this file instead of the terminal.")
    widget_args.add_argument("-nocolor", action="store_true", default=False,
                             help="Disable color text output.")
    widget_args.add_argument("-nooptimistic", action="store_true", default=False,
                             help="Always wait for fresh data instead of showing a recent cache entry.")
    widget_args.add_argument("-timeout", type=float, default=timeout,
                             help=f"Seconds to wait for each device [Default={timeout:.0f}]")

    subparsers.add_parser("setup", help='Create or show the settings file')
    subparsers.add_parser("version", help='Print version information')

    # Add a global debug flag
    p.add_argument("-debug", action="store_true", default=False, help="Enable debug output")
    return p


def run_widget(args) -> int:
    dtu = OpenDTU(timeout=args.timeout, optimistic=not args.nooptimistic)
    color = not args.nocolor and not args.output
    try:
        text, result = dtu.widget(size=args.size, color=color)
    except StorageFailure as exc:
        dtu.close()
        present(render_error(f"Fehler in den Einstellungen / Settings error:\n{exc}", color), args.output)
        return 1
    present(text, args.output)
    # A background refresh still owns the session; the interpreter waits for it on exit
    if result.background is None:
        dtu.close()
    return 1 if result.state == HARD_FAIL else 0


def run_setup() -> int:
    dtu = OpenDTU()
    print("pyOpenDTU [%s] - Settings\n" % version)
    try:
        settings = dtu.settings()
    except StorageFailure as exc:
        print(f"ERROR: {exc}")
        return 1
    print(f"Settings file: {dtu.store.path}\n")
    bootstrap = dtu.store.last_bootstrap_write
    if bootstrap is not None and not bootstrap.ok:
        print(f"WARNING: Unable to create the settings file ({bootstrap.error}) - showing defaults\n")
    for key, value in settings.to_dict().items():
        if key in SECRET_KEYS:
            value = "*" * len(str(value))
        print("  {:<20}{}".format(key, value))
    print("")
    if settings.is_placeholder():
        print("Edit the settings file and replace the 'change-me' values with your devices.")
    return 0


def main(argv=None) -> int:
    dotenv.load_dotenv()
    timeout = float(os.getenv("DTU_TIMEOUT", "10"))

    p = build_parser(timeout)
    if argv is None and len(sys.argv) == 1:
        p.print_help(sys.stderr)
        return 1
    args = p.parse_args(argv)

    # Set Debug Mode
    if args.debug or os.getenv("DTU_DEBUG", "no").lower() == "yes":
        set_debug(True)

    if args.command == 'widget':
        return run_widget(args)
    elif args.command == 'setup':
        return run_setup()
    elif args.command == 'version':
        print("pyOpenDTU [%s]" % version)
        return 0
    p.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
