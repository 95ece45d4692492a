"""Command line tool for manipulating mpdata stat files."""

from __future__ import annotations

import argparse
import sys
from typing import Optional

from .iwm import IWM, EncState, IWMError

_REGISTRY_PATH = "SOFTWARE\\Activision\\Call of Duty 4"
_REGISTRY_VALUE = "codkey"
_REGISTRY_MAX_LEN = 30


class _UsageError(Exception):
    """Raised instead of exiting when the command line is malformed."""


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise _UsageError(message)


def read_cd_key_from_registry() -> Optional[str]:
    """Return the game's CD key from the Windows registry, or None."""
    if sys.platform != "win32":
        return None
    import winreg

    try:
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE,
            _REGISTRY_PATH,
            0,
            winreg.KEY_READ | winreg.KEY_WOW64_32KEY,
        ) as handle:
            value, _kind = winreg.QueryValueEx(handle, _REGISTRY_VALUE)
    except OSError:
        return None
    if not isinstance(value, str) or len(value) > _REGISTRY_MAX_LEN:
        return None
    return value


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the command."""
    parser = _Parser(
        prog="iwmstats",
        description="Tool for manipulating mpdata files for CoD4",
    )
    general = parser.add_argument_group("General")
    general.add_argument("-m", "--mode", help="Valid args: encrypt, decrypt, stats")
    general.add_argument("-i", "--input", default="mpdata", metavar="file", help="Input mpdata file")
    general.add_argument(
        "-o", "--output", default="", metavar="file",
        help="Output mpdata file. If omitted, any changes will be made to input file",
    )
    general.add_argument(
        "-k", "--key", default="", metavar="cd-key",
        help="Required for (enc/dec)ryption. If omitted, the CD-key is fetched from the registry",
    )
    stats = parser.add_argument_group("Stats")
    stats.add_argument("-n", "--index", type=int, metavar="n",
                       help="Index of the stat to be read/written (0-3497)")
    stats.add_argument("-s", "--set", type=int, metavar="value", dest="set_value",
                       help="Value to be written at index n")
    return parser


def _run(args: argparse.Namespace) -> int:
    if args.mode is None:
        raise _UsageError("Option 'mode' has no value")
    mode = args.mode
    in_file = args.input
    out_file = args.output
    cd_key = args.key

    if not out_file:
        out_file = in_file
        print(f'Warn:  No output file specified, defaulting to: "{in_file}"')

    if not cd_key:
        print('Warn:  No CD-key specified, defaulting to: "', end="")
        registry_key = read_cd_key_from_registry()
        if registry_key is not None:
            cd_key = registry_key
            print(f'{cd_key}" (registry)')
        else:
            print('" (empty key)')

    iwm = IWM()
    try:
        iwm.set_cd_key(cd_key)
    except IWMError as exc:
        print(f'Error: CD-key "{cd_key}" appears to be invalid, err: {exc}')
        return 1

    try:
        iwm.read_file(in_file)
    except IWMError as exc:
        print(f'Error: Input stats file "{in_file}" appears to be invalid, err: {exc}')
        return 1

    write_needed = True
    if mode == "encrypt":
        enc_state = EncState.ENC
    elif mode == "decrypt":
        enc_state = EncState.DEC
    elif mode == "stats":
        if args.index is None:
            raise _UsageError("Option 'index' has no value")
        index = args.index
        enc_state = iwm.enc_state
        if args.set_value is not None:
            value = args.set_value
            try:
                iwm.set_stat(index, value)
            except IWMError as exc:
                print(f"Error: Can't set stat index={index} to value={value}, err: {exc}")
                return 1
            print(f"Info:  Written index={index}, value={value}")
        else:
            write_needed = False
            try:
                value = iwm.get_stat(index)
            except IWMError as exc:
                print(f"Error: Can't read stat index={index}, err: {exc}")
                return 1
            print(f"Info:  Read index={index}, value={value}")
    else:
        print(f"Error: Unknown mode specified: {mode}")
        return 1

    if write_needed:
        try:
            iwm.write_file(out_file, enc_state)
        except IWMError as exc:
            print(f'Error: Output stats file "{out_file}" can\'t be written, err: {exc}')
            return 1
        suffix = "(encrypted)" if enc_state is EncState.ENC else "(decrypted)"
        print(f'Info:  Output file written: "{out_file}" {suffix}')
    return 0


def main(argv=None) -> int:
    """Run the command; returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    parser = build_parser()

    if not argv:
        print(parser.format_help())
        return 0

    try:
        args = parser.parse_args(argv)
        return _run(args)
    except _UsageError as exc:
        print(f"Error: {exc}")
        return 0


if __name__ == "__main__":
    sys.exit(main())