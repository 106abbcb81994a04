"""
Reconcile dispatched orders in the audit store.

Usage:
    uv run python apps/web/manage.py reconcile_orders heal --order-id 5551234
    uv run python apps/web/manage.py reconcile_orders fix-dates
    uv run python apps/web/manage.py reconcile_orders cleanup-errors
    uv run python apps/web/manage.py reconcile_orders list --date 2025-01-15
"""

import json
import logging
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from apps.web.dispatch.services import build_healing_service, heal_orders
from apps.web.dispatch.services.healing import DEFAULT_LIST_LIMIT

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Heal, date-fix, clean up or list audit records of dispatched orders"

    def add_arguments(self, parser: Any) -> None:
        parser.add_argument(
            "action",
            choices=["heal", "fix-dates", "cleanup-errors", "list"],
        )
        parser.add_argument(
            "--order-id",
            action="append",
            dest="order_ids",
            default=[],
            help="Order id to heal (repeatable)",
        )
        parser.add_argument(
            "--date",
            help="Business day to list (YYYY-MM-DD)",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=DEFAULT_LIST_LIMIT,
            help=f"Maximum records to list (default: {DEFAULT_LIST_LIMIT})",
        )

    def handle(self, *_args: Any, **options: Any) -> None:
        action = options["action"]
        if options["limit"] < 1:
            raise CommandError("--limit must be a positive integer")

        match action:
            case "heal":
                if not options["order_ids"]:
                    raise CommandError("heal requires at least one --order-id")
                result = heal_orders(options["order_ids"]).to_response()
            case "fix-dates":
                result = build_healing_service().fix_dates().to_response()
            case "cleanup-errors":
                result = build_healing_service().cleanup_errors().to_response()
            case _:
                orders = build_healing_service().list_records(
                    date=options["date"], limit=options["limit"]
                )
                result = {"orders": orders, "count": len(orders)}

        logger.info("reconcile_orders %s finished", action)
        self.stdout.write(json.dumps(result, indent=2, default=str))
