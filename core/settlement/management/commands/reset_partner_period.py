"""
Reset Partner Period Management Command

Zeroes the per-period counters (monthly_sales, monthly_commission) of all
partners at the start of a new commission period. The bonus-pool contribution
is cumulative and is left untouched.

Usage:
    python manage.py reset_partner_period
    python manage.py reset_partner_period --partner-type school
    python manage.py reset_partner_period --dry-run
"""

import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import DatabaseError, transaction

from core.settlement.models import Partner

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Resets the period counters (monthly_sales, monthly_commission) of all partners to 0."

    def add_arguments(self, parser):
        parser.add_argument(
            "--partner-type",
            choices=Partner.PartnerType.values,
            help="Only reset partners of this type.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report the partners that would be reset without writing.",
        )

    def handle(self, *args, **options):
        partners = Partner.objects.exclude(monthly_sales=0, monthly_commission=0)
        if options["partner_type"]:
            partners = partners.filter(partner_type=options["partner_type"])

        count = partners.count()
        if count == 0:
            self.stdout.write(self.style.SUCCESS("No partners with open period counters found."))
            return

        self.stdout.write(f"{count} partner(s) will be reset:")
        for partner in partners:
            self.stdout.write(
                f"  - {partner.referral_code} ({partner.partner_type}): "
                f"{partner.monthly_sales} sales, {partner.monthly_commission} commission"
            )

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING("Dry run: no changes written."))
            return

        try:
            with transaction.atomic():
                updated = partners.update(monthly_sales=0, monthly_commission=0)
        except DatabaseError as e:
            logger.error(f"Error while running reset_partner_period: {e}", exc_info=True)
            raise CommandError(f"An error occurred: {e}")

        logger.info("Reset period counters of %s partner(s).", updated)
        self.stdout.write(self.style.SUCCESS(f"{updated} partner(s) reset successfully."))
