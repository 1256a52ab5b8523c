"""
Commission Settlement

Grants paid access to one user and credits at most one referral partner for a
verified payment, all inside a single database transaction.

Flow:
1. Validate identifiers and the request's state (no writes, no transaction)
2. Lock and re-check the request, lock the user's account
3. Resolve the partner: affiliate code first, school code only as fallback
4. Write access grant, partner counters, request status and sale ledger row
5. Commit, or roll back every write on any error

Both call sites (operator activation and payment callback) use ``settle``.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db.models import F
from django.db.models.functions import Now

from .exceptions import InvalidArgument, NotFoundOrAlreadyProcessed
from .models import ActivationRequest, Partner, normalize_code
from .store import SettlementStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementResult:
    granted: bool
    partner_credited: Optional[str]
    sale_id: Optional[int] = None


def commission_fee() -> int:
    return int(getattr(settings, "SETTLEMENT_COMMISSION_FEE", 60000))


def bonus_pool_share() -> int:
    return int(getattr(settings, "SETTLEMENT_BONUS_POOL_CONTRIBUTION", 40000))


def _require_id(value, field: str) -> str:
    value = "" if value is None else str(value).strip()
    if not value:
        raise InvalidArgument(f"{field} must not be empty.", field=field)
    return value


def resolve_partner(
    store: SettlementStore,
    affiliate_code: Optional[str],
    school_code: Optional[str],
) -> tuple[Optional[Partner], Optional[str]]:
    """
    Find the partner to credit and the code that matched.

    An affiliate code is tried first; the school code is only consulted when
    no active affiliate matched. An unmatched code is not an error.

    Returns:
        (partner, code_used); partner is None when nothing matched, code_used
        is the normalised code that was submitted (affiliate preferred).
    """
    candidates = (
        (Partner.PartnerType.AFFILIATE, normalize_code(affiliate_code)),
        (Partner.PartnerType.SCHOOL, normalize_code(school_code)),
    )
    for partner_type, code in candidates:
        if not code:
            continue
        partner = (
            store.partners()
            .select_for_update()
            .filter(partner_type=partner_type, referral_code=code, is_active=True)
            .first()
        )
        if partner is not None:
            return partner, code
        logger.info("No active %s partner for code %s.", partner_type, code)

    return None, normalize_code(affiliate_code) or normalize_code(school_code)


def _load_pending_request(store: SettlementStore, request_id: str, *, lock: bool) -> ActivationRequest:
    queryset = store.requests()
    if lock:
        queryset = queryset.select_for_update()
    activation_request = queryset.filter(pk=request_id).first()
    if activation_request is None or activation_request.is_completed:
        raise NotFoundOrAlreadyProcessed(resource=request_id)
    return activation_request


def settle(
    store: SettlementStore,
    *,
    request_id,
    processed_by: str,
    user_id=None,
    affiliate_code: Optional[str] = None,
    school_code: Optional[str] = None,
    amount: Optional[Decimal] = None,
    invoice_id: Optional[str] = None,
) -> SettlementResult:
    """
    Settle one activation request.

    Args:
        store: Data-store handle the whole operation runs against
        request_id: Id of the pending ActivationRequest
        processed_by: Identity recorded on the request (operator id or gateway)
        user_id: Expected owner of the request; mismatch is rejected
        affiliate_code: Referral code of an affiliate partner
        school_code: Referral code of a school partner (fallback)
        amount: Paid amount recorded on the sale; defaults to the request amount
        invoice_id: Gateway invoice id recorded on the sale

    Returns:
        SettlementResult with the credited partner id (or None)

    Raises:
        InvalidArgument: Missing identifiers or user/request mismatch
        NotFoundOrAlreadyProcessed: Unknown user/request, or request already completed
        InternalFailure: Database failure or exhausted transaction attempts
    """
    request_id = _require_id(request_id, "requestId")
    if user_id is not None:
        user_id = _require_id(user_id, "userId")

    activation_request = _load_pending_request(store, request_id, lock=False)
    if user_id is not None and str(activation_request.user_id) != user_id:
        raise InvalidArgument("userId does not match the request.", field="userId")

    fee = commission_fee()
    pool_share = bonus_pool_share()

    def _apply(tx_store: SettlementStore) -> SettlementResult:
        locked_request = _load_pending_request(tx_store, request_id, lock=True)

        account = (
            tx_store.accounts()
            .select_for_update()
            .filter(user_id=locked_request.user_id)
            .first()
        )
        if account is None:
            raise NotFoundOrAlreadyProcessed(
                "User not found.", resource=str(locked_request.user_id)
            )

        partner, code_used = resolve_partner(
            tx_store,
            affiliate_code if affiliate_code is not None else locked_request.affiliate_code,
            school_code if school_code is not None else locked_request.school_code,
        )

        tx_store.accounts().filter(pk=account.pk).update(
            has_paid_access=True,
            test_attempts_remaining=F("test_attempts_remaining") + 1,
        )

        if partner is not None:
            tx_store.partners().filter(pk=partner.pk).update(
                monthly_sales=F("monthly_sales") + 1,
                monthly_commission=F("monthly_commission") + fee,
                bonus_pool_contribution=F("bonus_pool_contribution") + pool_share,
            )

        tx_store.requests().filter(pk=locked_request.pk).update(
            status=ActivationRequest.Status.COMPLETED,
            processed_by=processed_by,
            processed_at=Now(),
        )

        sale = tx_store.sales().create(
            user_id=locked_request.user_id,
            request=locked_request,
            invoice_id=invoice_id or locked_request.invoice_id,
            amount=amount if amount is not None else locked_request.amount,
            partner=partner,
            commission=fee if partner else 0,
            bonus_pool_contribution=pool_share if partner else 0,
            code_used=code_used,
        )

        return SettlementResult(
            granted=True,
            partner_credited=str(partner.pk) if partner else None,
            sale_id=sale.pk,
        )

    result = store.run_transaction(_apply)

    logger.info(
        "Settled request %s for user %s (partner=%s, by=%s).",
        request_id,
        activation_request.user_id,
        result.partner_credited,
        processed_by,
    )
    return result
