"""Update check cycle, Lambda trigger handler and local runner."""

import argparse
import json
import sys
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from .anime_client import AnimeClient
from .checkpoint import PersistedCheckpoint, WindowCheckpoint, build_checkpoint_store
from .config import get_environment_config
from .email_notifier import EmailNotifier, format_local_time
from .interface import CycleResult, Settings, TriggerEvent
from .logger import get_logger, log_event
from .scheduler import UpdateScheduler, utc_now
from .update_filter import filter_new_files

logger = get_logger(__name__)


def check_updates(
    settings: Settings | None = None,
    clock: Callable[[], datetime] = utc_now,
    client: AnimeClient | None = None,
    notifier: EmailNotifier | None = None,
    checkpoint_store: WindowCheckpoint | PersistedCheckpoint | None = None,
) -> CycleResult:
    """
    Run one check cycle: fetch, filter, notify, advance the checkpoint.

    Collaborators not passed in are built from the settings. Every failure is
    caught here and reported in the result; nothing propagates to the caller.

    Returns:
        CycleResult describing the outcome
    """
    started = clock()
    display_timezone = settings.display_timezone if settings else "Asia/Shanghai"
    log_event(logger, "cycle_start", started=started.isoformat())

    try:
        if settings is None:
            settings = get_environment_config()
            display_timezone = settings.display_timezone

        logger.info(f"Watch list: {list(settings.watch_list)}")

        store = checkpoint_store or build_checkpoint_store(settings)
        checkpoint = store.load(started)
        logger.info(f"Checking for updates after {checkpoint.isoformat()}")

        if client is None:
            proxy = settings.http_proxy if settings.development else None
            client = AnimeClient(settings.api, proxy=proxy, timeout=settings.request_timeout)

        files = client.fetch_files()
        log_event(logger, "fetch_result", total_files=len(files))

        new_files = filter_new_files(
            files, checkpoint, settings.watch_list, api_timezone=settings.api_timezone
        )
        log_event(
            logger,
            "filter_result",
            total_files=len(files),
            new_files=len(new_files),
            checkpoint=checkpoint.isoformat(),
        )

        if new_files:
            for file in new_files:
                logger.info(f"New update: {file.name} ({file.modified_time})")

            if notifier is None:
                notifier = EmailNotifier(
                    settings.smtp,
                    settings.mail,
                    settings.api,
                    api_timezone=settings.api_timezone,
                    display_timezone=settings.display_timezone,
                    timeout=settings.smtp_timeout,
                )
            notifier.send_update_notification(new_files)
            log_event(logger, "notify_result", sent=True, files=len(new_files))
        else:
            logger.info("No new updates found")

        if store.persistent:
            # Never move the cursor backwards
            store.save(max(started, checkpoint))

        result = CycleResult(
            success=True,
            message="Check completed",
            check_time=_check_time(started, display_timezone),
            total_files=len(files),
            matched_files=len(new_files),
            notification_sent=bool(new_files),
        )

    except Exception as e:
        logger.error(f"Error while checking for updates: {e}", exc_info=True)
        result = CycleResult(
            success=False,
            message=str(e) or e.__class__.__name__,
            check_time=_check_time(started, display_timezone),
        )

    duration = (clock() - started).total_seconds()
    log_event(
        logger,
        "cycle_end",
        success=result.success,
        total_files=result.total_files,
        matched_files=result.matched_files,
        notification_sent=result.notification_sent,
        duration=f"{duration:.2f}s",
    )
    return result


def _check_time(started: datetime, display_timezone: str) -> str:
    try:
        return format_local_time(started, display_timezone)
    except (KeyError, ValueError):
        return started.isoformat()


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda handler triggering one check cycle.

    Args:
        event: API Gateway / Function URL event, or a scheduled event
        context: Lambda context

    Returns:
        Response dictionary with a JSON body
    """
    try:
        trigger = TriggerEvent.model_validate(event or {})
    except ValidationError as e:
        logger.warning(f"Rejected malformed event: {e}")
        return _create_response(400, {"success": False, "message": "Malformed event"})

    logger.info(f"Received trigger: method={trigger.method}")

    if trigger.method is not None and trigger.method != "POST":
        return _create_response(405, {"success": False, "message": "Only POST requests are supported"})

    result = check_updates()

    body: dict[str, Any] = {"success": result.success, "message": result.message}
    if result.check_time:
        body["checkTime"] = result.check_time
    if result.success:
        body["matchedFiles"] = result.matched_files
        body["notificationSent"] = result.notification_sent

    return _create_response(200 if result.success else 500, body)


def _create_response(status_code: int, body: dict[str, Any]) -> dict[str, Any]:
    """Create standardized Lambda proxy response."""
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


if __name__ == "__main__":
    """Local execution: a single cycle or a fixed-interval loop."""
    parser = argparse.ArgumentParser(description="Check the anime feed for watched updates")
    parser.add_argument("--once", action="store_true", help="Run a single check cycle and exit")
    parser.add_argument(
        "--interval-minutes",
        type=int,
        help="Minutes between checks (defaults to CHECK_INTERVAL_MINUTES or 5)",
    )
    args = parser.parse_args()

    if args.once:
        result = check_updates()
        print(f"{'✅' if result.success else '❌'} {result.message}")
        if result.success:
            print(f"Files listed: {result.total_files}, new updates: {result.matched_files}")
        sys.exit(0 if result.success else 1)

    interval = args.interval_minutes or get_environment_config().check_interval_minutes
    logger.info(f"Checking for updates every {interval} minutes")

    UpdateScheduler(timedelta(minutes=interval)).start(check_updates)
