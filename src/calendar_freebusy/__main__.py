"""CLI entry point for free/busy and recurrence lookups."""

import argparse
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytz

from .config import DatasetConfig, config
from .freebusy.loader import OverlappingEventsLoader
from .freebusy.service import CrossTenantFreeBusyLookup, FreeBusyService
from .freebusy.visibility import FreeBusyVisibilityEvaluator
from .models.event import RecurrenceId
from .models.participant import CalendarUserType, Participant
from .recurrence.expander import RRuleExpander
from .recurrence.info import RecurrenceInfoResolver
from .resolvers.identity import IdentityResolver
from .session import ViewerContext
from .utils.date_utils import get_window
from .utils.exceptions import CalendarFreeBusyError
from .utils.logging import setup_logging


def _parse_attendee(value: str) -> Participant:
    """Parse an attendee given as [type:]entity id, e-mail or mailto: address."""
    if value.isdigit():
        return Participant(entity=int(value))
    cu_type, _, entity = value.partition(":")
    if entity.isdigit():
        try:
            return Participant(entity=int(entity), cu_type=CalendarUserType(cu_type.lower()))
        except ValueError:
            raise ValueError(f"Invalid calendar user type: {cu_type}") from None
    if value.lower().startswith("mailto:"):
        return Participant(uri=value)
    if "@" in value:
        return Participant(uri=f"mailto:{value}")
    raise ValueError(f"Invalid attendee: {value}")


def _parse_day(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=pytz.utc)


def _print_free_busy(results) -> None:
    for participant, result in results.items():
        label = participant.entity if participant.is_internal else participant.email
        print(f"\n=== {label} ===")
        if result.free_busy_times is None:
            print("  Free/busy not available")
        else:
            print(f"Found {len(result.free_busy_times)} slot(s):")
            for slot in result.free_busy_times:
                summary = slot.event.summary if slot.event is not None and slot.event.summary else ""
                print(f"  - {slot.fb_type.value}: {slot.start} to {slot.end} {summary}".rstrip())
        for warning in result.warnings:
            print(f"  ! {warning}")


def _create_viewer(args) -> ViewerContext:
    return ViewerContext(
        user_id=args.viewer,
        tenant_id=args.tenant,
        timezone=args.timezone or config.default_timezone,
        mask_uid=args.mask_uid,
    )


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Calendar Free/Busy - Free/busy and recurrence lookups over a calendar dataset"
    )
    parser.add_argument("--data", type=Path, default=None, help="YAML dataset (overrides DATA_FILE)")
    parser.add_argument("--tenant", type=int, required=True, help="Tenant of the acting user")
    parser.add_argument("--viewer", type=int, required=True, help="Entity id of the acting user")
    parser.add_argument("--timezone", type=str, default=None, help="Timezone of the acting user")
    parser.add_argument("--free-busy", action="store_true", help="Show free/busy times of attendees")
    parser.add_argument("--recurrence-info", action="store_true", help="Show recurrence info of an event")
    parser.add_argument(
        "--attendee",
        action="append",
        default=[],
        help="Attendee entity id (optionally typed, e.g. resource:10) or e-mail address (repeatable)",
    )
    parser.add_argument("--start-date", type=str, default=None, help="Start of period (YYYY-MM-DD)")
    parser.add_argument("--end-date", type=str, default=None, help="End of period, inclusive (YYYY-MM-DD)")
    parser.add_argument("--lookback", type=int, default=None, help="Days to look back (overrides config)")
    parser.add_argument("--lookahead", type=int, default=None, help="Days to look ahead (overrides config)")
    parser.add_argument("--mask-uid", type=str, default=None, help="UID of an event to hide")
    parser.add_argument("--no-merge", action="store_true", help="Do not merge free/busy times")
    parser.add_argument("--folder", type=str, default=None, help="Folder of the event")
    parser.add_argument("--event", type=str, default=None, help="Event identifier")
    parser.add_argument("--recurrence-id", type=str, default=None, help="Recurrence id, e.g. 20260105T090000Z")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()

    log_level = "DEBUG" if args.verbose else config.log_level
    logger = setup_logging(level=log_level, log_file=config.log_file)

    try:
        dataset = DatasetConfig(args.data or config.data_file, config.default_timezone)
        if not dataset.has_config:
            logger.error("No dataset found or no tenants configured")
            return 1

        viewer = _create_viewer(args)
        provider = dataset.storage_provider()
        facts = dataset.permission_facts(viewer.tenant_id, viewer.user_id)
        expander = RRuleExpander()

        if args.free_busy:
            try:
                attendees = [_parse_attendee(a) for a in args.attendee]
                if args.start_date or args.end_date:
                    start = _parse_day(args.start_date) if args.start_date else get_window(0, 0)[0]
                    until = _parse_day(args.end_date) + timedelta(days=1) if args.end_date else start + timedelta(days=7)
                else:
                    lookback = args.lookback if args.lookback is not None else config.lookback_days
                    lookahead = args.lookahead if args.lookahead is not None else config.lookahead_days
                    start, until = get_window(lookback, lookahead)
            except ValueError as e:
                logger.error(f"Invalid argument: {e}")
                return 1
            if not attendees:
                logger.error("No attendees specified")
                return 1

            evaluator = FreeBusyVisibilityEvaluator(viewer, facts)
            loader = OverlappingEventsLoader(provider)
            cross_tenant_lookup = None
            if config.cross_tenant_free_busy:
                cross_tenant_lookup = CrossTenantFreeBusyLookup(
                    IdentityResolver(dataset.identity_service()),
                    loader,
                    dataset.permission_facts,
                    evaluator,
                )
            service = FreeBusyService(evaluator, loader, expander, cross_tenant_lookup)
            logger.info(f"Free/busy from {start} to {until} for {len(attendees)} attendee(s)")
            results = service.free_busy(attendees, start, until, merge=config.merge_free_busy and not args.no_merge)
            _print_free_busy(results)
            for warning in viewer.warnings:
                logger.warning(f"{warning}")
            return 0

        if args.recurrence_info:
            if not args.folder or not args.event:
                logger.error("--folder and --event are required")
                return 1
            recurrence_id = RecurrenceId.parse(args.recurrence_id) if args.recurrence_id else None
            info = provider.with_tenant_storage(
                viewer.tenant_id,
                lambda storage: RecurrenceInfoResolver(storage, expander, facts).resolve(
                    args.folder, args.event, recurrence_id
                ),
            )
            print(f"Overridden: {info.overridden}")
            print(f"Rescheduled: {info.rescheduled}")
            print(f"Master: {info.master_event.id if info.master_event else 'None'}")
            occurrence = info.occurrence_event
            print(f"Occurrence: {occurrence.id} ({occurrence.recurrence_id}) {occurrence.start} to {occurrence.end}")
            return 0

        parser.print_help()
        return 0

    except CalendarFreeBusyError as e:
        logger.error(f"Calendar free/busy error: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
