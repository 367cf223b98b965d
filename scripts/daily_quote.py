from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from quotebook.api import deps
from quotebook.engine.daily_quote import DailyQuoteSelector
from quotebook.engine.errors import QuotebookError
from quotebook.engine.quote_store import QuoteStore, load_catalog
from quotebook.engine.reminders import LocalNotificationService, ReminderScheduler


async def _show(store: QuoteStore, args: argparse.Namespace) -> dict:
    selector = DailyQuoteSelector(store, timeout_seconds=args.timeout)
    result = await selector.select(args.user, args.date)
    return result.to_dict()


async def _seed(store: QuoteStore, args: argparse.Namespace) -> dict:
    existing = {q.id for q in await store.list_quotes()}
    catalog = load_catalog(Path(args.catalog))
    rows = [r for r in catalog if r.get("id") not in existing]
    added = await store.add_quotes(rows)
    return {"added": len(added), "skipped": len(catalog) - len(rows)}


async def _remind(store: QuoteStore, args: argparse.Namespace) -> dict:
    selector = DailyQuoteSelector(store, timeout_seconds=args.timeout)
    scheduler = ReminderScheduler(LocalNotificationService(prompt_answer=True))
    if not await scheduler.schedule_permission():
        return {"scheduled": False, "reason": "permission_denied"}
    quote = await selector.get_daily_quote(args.user, args.date)
    if quote is None:
        return {"scheduled": False, "reason": "no_quotes_available"}
    schedule_id = await scheduler.schedule_quote(args.hour, args.minute, quote)
    return {"scheduled": True, "schedules": [s.to_dict() for s in await scheduler.scheduled()], "id": schedule_id}


def main() -> int:
    parser = argparse.ArgumentParser(description="Daily quote tools: show today's quote, seed the store, preview a reminder")
    parser.add_argument("--store", default=str(deps.STORE_PATH))
    parser.add_argument("--timeout", type=float, default=deps.DATA_TIMEOUT_SECONDS)
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_show = sub.add_parser("show", help="Select (or reuse) the daily quote for a user")
    p_show.add_argument("--user", required=True)
    p_show.add_argument("--date", default=None, help="YYYY-MM-DD, defaults to today")

    p_seed = sub.add_parser("seed", help="Validate and import quotes from a catalog file")
    p_seed.add_argument("--catalog", default=str(deps.CATALOG_PATH))

    p_remind = sub.add_parser("remind", help="Schedule the daily reminder with today's quote")
    p_remind.add_argument("--user", required=True)
    p_remind.add_argument("--hour", type=int, required=True)
    p_remind.add_argument("--minute", type=int, default=0)
    p_remind.add_argument("--date", default=None)

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = QuoteStore(Path(args.store))
    handlers = {"show": _show, "seed": _seed, "remind": _remind}
    try:
        out = asyncio.run(handlers[args.cmd](store, args))
    except (QuotebookError, ValueError) as e:
        print(json.dumps({"error": str(e)}, ensure_ascii=False, sort_keys=True), file=sys.stderr)
        return 1
    print(json.dumps(out, ensure_ascii=False, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
