"""Start an export on the export service and wait for its download link.

Usage:
    python scripts/export_reservations.py --resource reservations --format csv
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from scenario_booking.core.config import get_settings
from scenario_booking.core.errors import JobError
from scenario_booking.integrations import ExportClient, ExportClientError
from scenario_booking.schemas.export import ExportJob, ExportRequest
from scenario_booking.security.logging_filters import SensitiveFilter
from scenario_booking.services.job_poller import AsyncJobPoller


def _print_progress(job: ExportJob) -> None:
    progress = f"{job.progress:.0f}%" if job.progress is not None else "-"
    print(f"  {job.status.value:<10} {progress}")


async def run_export(resource: str, request: ExportRequest) -> int:
    settings = get_settings()
    if not settings.export_service_url:
        print("EXPORT_SERVICE_URL is not configured", file=sys.stderr)
        return 2

    async with ExportClient(
        settings.export_service_url,
        resource,
        token=settings.export_api_token,
        timeout=settings.export_request_timeout_seconds,
    ) as client:
        poller = AsyncJobPoller(
            lambda: client.start_export(request),
            client.get_status,
            client.get_download,
            interval=settings.export_poll_interval_seconds,
            max_attempts=settings.export_max_attempts,
            on_update=_print_progress,
        )
        try:
            job = await poller.run()
            if job is None:
                print("Export cancelled")
                return 1
            download = await poller.download()
        except JobError as exc:
            print(json.dumps(exc.to_detail(), indent=2), file=sys.stderr)
            return 1
        except ExportClientError as exc:
            detail = {"error": "ExportClientError", "message": str(exc)}
            print(json.dumps(detail, indent=2), file=sys.stderr)
            return 1

    print(f"{download.file_name}: {download.url}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--resource", default="reservations")
    parser.add_argument("--format", choices=("xlsx", "csv"), default="xlsx")
    parser.add_argument(
        "--filter",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Filter forwarded to the export service; repeatable.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    for handler in logging.getLogger().handlers:
        handler.addFilter(SensitiveFilter())

    filters: dict[str, str] = {}
    for item in args.filter:
        key, sep, value = item.partition("=")
        if not sep:
            parser.error(f"--filter expects KEY=VALUE, got {item!r}")
        filters[key] = value

    request = ExportRequest(format=args.format, filters=filters)
    return asyncio.run(run_export(args.resource, request))


if __name__ == "__main__":
    raise SystemExit(main())
