"""
Settlement Service Tests

Covers the settlement operation against the database: access grant, partner
precedence, idempotency, atomicity and the bounded transaction attempts.
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import User
from django.db import DatabaseError, OperationalError
from django.db.models.query import QuerySet
from django.test import TestCase, override_settings

from core.accounts.models import Account
from core.settlement.exceptions import (
    InternalFailure,
    InvalidArgument,
    NotFoundOrAlreadyProcessed,
    TransactionConflict,
)
from core.settlement.models import ActivationRequest, Partner, Sale
from core.settlement.services import settle
from core.settlement.store import SettlementStore


class SettleTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.buyer = User.objects.create_user(username="buyer", password="Musterpassword")
        cls.affiliate = Partner.objects.create(
            name="Affiliate P1",
            partner_type=Partner.PartnerType.AFFILIATE,
            referral_code="abc",
        )
        cls.school = Partner.objects.create(
            name="SMA 1",
            partner_type=Partner.PartnerType.SCHOOL,
            referral_code="SMA1",
        )

    def setUp(self):
        self.store = SettlementStore()

    def _request(self, **kwargs):
        defaults = {"user": self.buyer, "amount": Decimal("150000")}
        defaults.update(kwargs)
        return ActivationRequest.objects.create(**defaults)

    def _settle(self, activation_request, **kwargs):
        kwargs.setdefault("processed_by", "operator-7")
        return settle(self.store, request_id=activation_request.pk, **kwargs)

    def test_referral_code_is_stored_upper_case(self):
        self.assertEqual(self.affiliate.referral_code, "ABC")

    def test_settlement_grants_access_and_credits_affiliate(self):
        request_r1 = self._request(affiliate_code="ABC")

        result = self._settle(request_r1, user_id=str(self.buyer.pk))

        self.assertTrue(result.granted)
        self.assertEqual(result.partner_credited, str(self.affiliate.pk))

        account = Account.objects.get(user=self.buyer)
        self.assertTrue(account.has_paid_access)
        self.assertEqual(account.test_attempts_remaining, 1)

        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 1)
        self.assertEqual(self.affiliate.monthly_commission, 60000)
        self.assertEqual(self.affiliate.bonus_pool_contribution, 40000)

        request_r1.refresh_from_db()
        self.assertEqual(request_r1.status, ActivationRequest.Status.COMPLETED)
        self.assertEqual(request_r1.processed_by, "operator-7")
        self.assertIsNotNone(request_r1.processed_at)

        sale = Sale.objects.get(request=request_r1)
        self.assertEqual(sale.pk, result.sale_id)
        self.assertEqual(sale.partner, self.affiliate)
        self.assertEqual(sale.amount, Decimal("150000"))
        self.assertEqual(sale.code_used, "ABC")
        self.assertEqual(sale.commission, 60000)
        self.assertEqual(sale.bonus_pool_contribution, 40000)

    def test_test_attempts_are_incremented_not_overwritten(self):
        Account.objects.filter(user=self.buyer).update(test_attempts_remaining=2)

        self._settle(self._request())

        self.assertEqual(Account.objects.get(user=self.buyer).test_attempts_remaining, 3)

    def test_second_settlement_is_rejected_without_writes(self):
        activation_request = self._request(affiliate_code="ABC")
        self._settle(activation_request)

        with self.assertRaises(NotFoundOrAlreadyProcessed):
            self._settle(activation_request)

        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 1)
        self.assertEqual(self.affiliate.monthly_commission, 60000)
        self.assertEqual(Account.objects.get(user=self.buyer).test_attempts_remaining, 1)
        self.assertEqual(Sale.objects.count(), 1)

    def test_affiliate_takes_precedence_over_school(self):
        activation_request = self._request(affiliate_code="ABC", school_code="SMA1")

        result = self._settle(activation_request)

        self.assertEqual(result.partner_credited, str(self.affiliate.pk))
        self.school.refresh_from_db()
        self.assertEqual(self.school.monthly_sales, 0)
        self.assertEqual(self.school.monthly_commission, 0)

    def test_school_is_credited_when_affiliate_code_does_not_match(self):
        activation_request = self._request(affiliate_code="NOPE", school_code="sma1")

        result = self._settle(activation_request)

        self.assertEqual(result.partner_credited, str(self.school.pk))
        self.school.refresh_from_db()
        self.assertEqual(self.school.monthly_sales, 1)
        self.assertEqual(self.school.monthly_commission, 60000)
        self.assertEqual(Sale.objects.get(request=activation_request).code_used, "SMA1")

    def test_school_code_does_not_match_affiliate_partner(self):
        activation_request = self._request(school_code="ABC")

        result = self._settle(activation_request)

        self.assertIsNone(result.partner_credited)

    def test_unmatched_code_grants_access_without_commission(self):
        activation_request = self._request(affiliate_code="zzz")

        result = self._settle(activation_request)

        self.assertTrue(result.granted)
        self.assertIsNone(result.partner_credited)
        self.assertTrue(Account.objects.get(user=self.buyer).has_paid_access)

        sale = Sale.objects.get(request=activation_request)
        self.assertIsNone(sale.partner)
        self.assertEqual(sale.commission, 0)
        self.assertEqual(sale.bonus_pool_contribution, 0)
        self.assertEqual(sale.code_used, "ZZZ")

        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 0)

    def test_no_code_records_sale_without_partner(self):
        activation_request = self._request()

        self._settle(activation_request)

        sale = Sale.objects.get(request=activation_request)
        self.assertIsNone(sale.partner)
        self.assertIsNone(sale.code_used)

    def test_lookup_is_case_insensitive(self):
        result = self._settle(self._request(), affiliate_code="  abc ")

        self.assertEqual(result.partner_credited, str(self.affiliate.pk))

    def test_explicit_code_overrides_stored_code(self):
        activation_request = self._request(affiliate_code="ZZZ")

        result = self._settle(activation_request, affiliate_code="ABC")

        self.assertEqual(result.partner_credited, str(self.affiliate.pk))

    def test_inactive_partner_is_not_credited(self):
        Partner.objects.filter(pk=self.affiliate.pk).update(is_active=False)

        result = self._settle(self._request(affiliate_code="ABC"))

        self.assertIsNone(result.partner_credited)

    @override_settings(SETTLEMENT_COMMISSION_FEE=1000, SETTLEMENT_BONUS_POOL_CONTRIBUTION=500)
    def test_amounts_come_from_settings(self):
        self._settle(self._request(affiliate_code="ABC"))

        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_commission, 1000)
        self.assertEqual(self.affiliate.bonus_pool_contribution, 500)

    def test_paid_access_is_never_revoked(self):
        Account.objects.filter(user=self.buyer).update(has_paid_access=True)

        self._settle(self._request())

        self.assertTrue(Account.objects.get(user=self.buyer).has_paid_access)

    def test_amount_and_invoice_override_request_values(self):
        activation_request = self._request(invoice_id="inv_old")

        self._settle(activation_request, amount=Decimal("99000"), invoice_id="inv_new")

        sale = Sale.objects.get(request=activation_request)
        self.assertEqual(sale.amount, Decimal("99000"))
        self.assertEqual(sale.invoice_id, "inv_new")

    # --- Validation ---

    def test_empty_request_id_is_invalid(self):
        for request_id in (None, "", "   "):
            with self.assertRaises(InvalidArgument):
                settle(self.store, request_id=request_id, processed_by="operator-7")

    def test_empty_user_id_is_invalid(self):
        activation_request = self._request()

        with self.assertRaises(InvalidArgument):
            self._settle(activation_request, user_id=" ")

    def test_unknown_request_is_not_found(self):
        with self.assertRaises(NotFoundOrAlreadyProcessed):
            settle(self.store, request_id="does-not-exist", processed_by="operator-7")

    def test_user_mismatch_is_rejected_without_writes(self):
        other = User.objects.create_user(username="other", password="Musterpassword")
        activation_request = self._request(affiliate_code="ABC")

        with self.assertRaises(InvalidArgument):
            self._settle(activation_request, user_id=str(other.pk))

        activation_request.refresh_from_db()
        self.assertEqual(activation_request.status, ActivationRequest.Status.PENDING)
        self.assertFalse(Account.objects.get(user=self.buyer).has_paid_access)

    def test_missing_account_aborts_transaction(self):
        activation_request = self._request(affiliate_code="ABC")
        Account.objects.filter(user=self.buyer).delete()

        with self.assertRaises(NotFoundOrAlreadyProcessed):
            self._settle(activation_request)

        activation_request.refresh_from_db()
        self.assertEqual(activation_request.status, ActivationRequest.Status.PENDING)
        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 0)
        self.assertFalse(Sale.objects.exists())

    def test_request_completed_after_precheck_is_rejected_under_lock(self):
        activation_request = self._request(affiliate_code="ABC")
        original_run = SettlementStore.run_transaction

        def complete_then_run(store, body):
            # A concurrent settlement commits between the pre-check and the lock
            ActivationRequest.objects.filter(pk=activation_request.pk).update(
                status=ActivationRequest.Status.COMPLETED
            )
            return original_run(store, body)

        with mock.patch.object(
            SettlementStore, "run_transaction", autospec=True, side_effect=complete_then_run
        ):
            with self.assertRaises(NotFoundOrAlreadyProcessed):
                self._settle(activation_request)

        account = Account.objects.get(user=self.buyer)
        self.assertFalse(account.has_paid_access)
        self.assertEqual(account.test_attempts_remaining, 0)
        self.affiliate.refresh_from_db()
        self.assertEqual(self.affiliate.monthly_sales, 0)
        self.assertEqual(self.affiliate.monthly_commission, 0)
        self.assertEqual(self.affiliate.bonus_pool_contribution, 0)
        self.assertFalse(Sale.objects.exists())

    # --- Atomicity ---

    def test_failing_partner_write_rolls_back_everything(self):
        activation_request = self._request(affiliate_code="ABC")
        original_update = QuerySet.update

        def update_or_fail(queryset, **kwargs):
            if queryset.model is Partner:
                raise DatabaseError("forced partner write failure")
            return original_update(queryset, **kwargs)

        with mock.patch.object(QuerySet, "update", autospec=True, side_effect=update_or_fail):
            with self.assertRaises(InternalFailure):
                self._settle(activation_request)

        account = Account.objects.get(user=self.buyer)
        self.assertFalse(account.has_paid_access)
        self.assertEqual(account.test_attempts_remaining, 0)
        activation_request.refresh_from_db()
        self.assertEqual(activation_request.status, ActivationRequest.Status.PENDING)
        self.assertIsNone(activation_request.processed_at)
        self.assertFalse(Sale.objects.exists())

    def test_sale_records_are_immutable(self):
        activation_request = self._request()
        self._settle(activation_request)
        sale = Sale.objects.get(request=activation_request)

        sale.commission = 1
        with self.assertRaises(ValueError):
            sale.save()


class SettlementStoreTests(TestCase):
    def test_conflicts_are_retried(self):
        store = SettlementStore(max_attempts=3)
        calls = []

        def body(tx_store):
            calls.append(tx_store)
            if len(calls) == 1:
                raise OperationalError("database is locked")
            return "committed"

        self.assertEqual(store.run_transaction(body), "committed")
        self.assertEqual(len(calls), 2)
        self.assertIs(calls[0], store)

    def test_exhausted_attempts_raise_internal_failure(self):
        store = SettlementStore(max_attempts=3)
        body = mock.Mock(side_effect=OperationalError("could not serialize access"))

        with self.assertRaises(InternalFailure) as ctx:
            store.run_transaction(body)

        self.assertEqual(body.call_count, 3)
        self.assertIsInstance(ctx.exception.__cause__, TransactionConflict)
        self.assertEqual(ctx.exception.__cause__.attempt, 3)

    def test_settlement_errors_are_not_retried(self):
        store = SettlementStore(max_attempts=3)
        body = mock.Mock(side_effect=NotFoundOrAlreadyProcessed())

        with self.assertRaises(NotFoundOrAlreadyProcessed):
            store.run_transaction(body)

        self.assertEqual(body.call_count, 1)

    def test_other_database_errors_are_not_retried(self):
        store = SettlementStore(max_attempts=3)
        body = mock.Mock(side_effect=DatabaseError("disk full"))

        with self.assertRaises(InternalFailure):
            store.run_transaction(body)

        self.assertEqual(body.call_count, 1)

    @override_settings(SETTLEMENT_MAX_TRANSACTION_ATTEMPTS=2)
    def test_from_settings(self):
        store = SettlementStore.from_settings()

        self.assertEqual(store.using, "default")
        self.assertEqual(store.max_attempts, 2)
