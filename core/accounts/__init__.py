"""
Accounts Package
================

User account profile for the settlement backend. Every Django user gets an
``Account`` carrying the paid-access flag, the remaining test attempts and the
operator role that is embedded into issued JWTs.
"""
