"""Command-line interface for inspecting a configuration directory.

Examples:
    python -m dirconfig --config-dir config --cache-file var/config.cache get app.name
    python -m dirconfig --settings dirconfig.yaml dump --format yaml
    python -m dirconfig files
    python -m dirconfig clear-cache
"""

import argparse
import json
import logging
import sys
from typing import Any, Optional

import yaml

from .loader.file import ConfigurationError
from .manager import ConfigService
from .settings import load_settings
from .utils.logging import setup_logging
from .utils.lookup import has

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirconfig",
        description="Load a directory of configuration files through a validated cache",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Settings precedence (lowest to highest): defaults, --settings file,\n"
            "DIRCONFIG_* environment variables, command-line options."
        ),
    )
    parser.add_argument("--settings", help="YAML/JSON/TOML/INI settings file")
    parser.add_argument("--config-dir", help="Configuration directory")
    parser.add_argument("--cache-file", help="Cache backing file")
    parser.add_argument("--ttl", type=int, help="Cache TTL in seconds (0 never expires)")
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="NAME",
        help="File name to load fresh on every call (repeatable)",
    )
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--log-config", help="YAML logging configuration file")
    parser.add_argument("--log-file", help="Also log to this file (rotated at 10MB)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="Print one value by dotted key")
    get_parser.add_argument("key", help="Dotted key, e.g. database.host")
    get_parser.add_argument("--default", help="Printed when the key is missing")

    dump_parser = subparsers.add_parser("dump", help="Print the merged configuration")
    dump_parser.add_argument("--format", choices=("json", "yaml"), default="json")

    subparsers.add_parser("files", help="Show how each file is classified")
    subparsers.add_parser("clear-cache", help="Delete the cache file")

    return parser


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, default=str, ensure_ascii=False)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "config_dir": args.config_dir,
        "excluded_files": args.exclude,
        "log_level": args.log_level,
        "cache": {"file": args.cache_file, "ttl": args.ttl},
    }

    try:
        settings = load_settings(args.settings, overrides=overrides)
        setup_logging(
            config_path=args.log_config,
            default_level=settings.log_level,
            log_file=args.log_file,
        )
        service = ConfigService.from_settings(settings)
        logger.debug(f"Running {args.command} against {settings.config_dir}")

        if args.command == "get":
            if has(service.all(), args.key):
                print(_format_value(service.get(args.key)))
            elif args.default is not None:
                print(args.default)
            else:
                print(f"dirconfig: key not found: {args.key}", file=sys.stderr)
                return 1

        elif args.command == "dump":
            tree = service.load()
            if args.format == "yaml":
                print(yaml.safe_dump(tree, default_flow_style=False, sort_keys=False), end="")
            else:
                print(_format_value(tree))

        elif args.command == "files":
            for path, file_class in service.classify_files().items():
                print(f"{file_class.value:<8} {path}")

        elif args.command == "clear-cache":
            if not service.cache.clear():
                return 1
            print(f"Cleared {service.cache.cache_file}")

    except ConfigurationError as e:
        print(f"dirconfig: {e}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"dirconfig: cannot render configuration as YAML: {e}", file=sys.stderr)
        return 1

    return 0
