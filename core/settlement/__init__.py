"""
Commission Settlement Package
=============================

Atomically grants paid access to a user and credits at most one referral
partner (affiliate or school) per verified payment.

Structure
---------
- models.py       → Partner, ActivationRequest, Sale
- store.py        → SettlementStore (database alias + bounded transaction attempts)
- services.py     → settle() and partner resolution
- exceptions.py   → error kinds returned to callers
- permissions.py  → admin role-claim check
- views.py        → operator endpoints
- management/     → reset_partner_period command
"""
