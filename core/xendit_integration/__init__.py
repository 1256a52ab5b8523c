"""
Xendit Integration Package
==========================

Payment-gateway glue for the settlement backend.

Current Scope
-------------
- Creating hosted invoices (client.py, CreateInvoiceView)
- Receiving invoice callbacks and settling paid invoices (XenditCallbackView)

Structure
---------
- client.py  → XenditClient (requests-based, HTTP basic auth with secret key)
- views.py   → API endpoints (invoice creation, callback)
- urls.py    → Routes for Xendit endpoints
"""
