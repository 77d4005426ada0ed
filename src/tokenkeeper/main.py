"""CLI entry point: ties together configuration and the interactive session."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from tokenkeeper.settings.loader import DEFAULT_SETTINGS_PATH, SettingsError, load_settings


def main() -> None:
    parser = argparse.ArgumentParser(
        description="tokenkeeper: client session with proactive credential renewal",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_SETTINGS_PATH),
        help="Path to settings.yaml",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Override identity.base_url from the settings file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        sys.exit(2)

    if args.base_url:
        settings = dataclasses.replace(
            settings,
            identity=dataclasses.replace(settings.identity, base_url=args.base_url),
        )

    from tokenkeeper.prompt.cli import run_cli

    run_cli(settings)


if __name__ == "__main__":
    main()
