from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from paybill_mailer import config
from paybill_mailer.orchestrator import (
    PREVIEW_KINDS,
    build_holiday_cache,
    render_preview,
    run_scheduled,
    send_preview,
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Monthly payment-notice mailer.")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("send", help="send the monthly mail if today is the send date")
    preview = commands.add_parser("preview", help="send a preview mail now")
    preview.add_argument("--to", default=None, help="preview recipient (default: PREVIEW_TO_EMAIL or FROM_EMAIL)")
    render = commands.add_parser("render", help="write preview HTML for a template pair")
    render.add_argument("kind", choices=sorted(PREVIEW_KINDS))
    render.add_argument("--year", type=int, default=None)
    render.add_argument("--output", default=None, help="file to write (default: stdout)")
    commands.add_parser("refresh-holidays", help="re-fetch the holiday calendar feed")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    try:
        settings = config.Settings.from_env()
    except ValueError as exc:
        logging.error("Missing configuration: %s", exc)
        return 1

    try:
        return _run_command(args, settings)
    except Exception as exc:  # noqa: BLE001
        logging.exception("%s failed: %s", args.command, exc)
        return 1


def _run_command(args: argparse.Namespace, settings: config.Settings) -> int:
    if args.command == "refresh-holidays":
        record = build_holiday_cache(settings).refresh()
        if record.is_empty():
            logging.error("refresh_holidays: no holiday data available.")
            return 1
        return 0

    if args.command == "render":
        html = render_preview(settings, args.kind, year=args.year)
        if args.output:
            Path(args.output).write_text(html, encoding="utf-8")
            logging.info("Preview written to %s", args.output)
        else:
            sys.stdout.write(html + "\n")
        return 0

    if args.command == "preview":
        result = send_preview(settings, to_email=args.to)
    else:
        result = run_scheduled(settings)
    return 1 if result.is_failure() else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
