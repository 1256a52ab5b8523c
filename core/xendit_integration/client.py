"""
Xendit API Client

Minimal client for the Xendit invoice API. Only invoice creation is needed:
the payment itself happens on Xendit's hosted page and is reported back via
the invoice callback (see views.XenditCallbackView).

Authentication uses HTTP basic auth with the secret key as username and an
empty password, as documented by Xendit.
"""

import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class XenditError(Exception):
    """
    Raised when an invoice cannot be created.

    Attributes:
        message (str): Human-readable error description
        status_code (Optional[int]): HTTP status code returned by Xendit
        response_body (Optional[Any]): Parsed error body returned by Xendit
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[Any] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(self.message)


class XenditClient:
    """
    Thin wrapper around the Xendit REST API.

    Example:
        >>> client = XenditClient.from_settings()
        >>> invoice = client.create_invoice(
        ...     external_id="JALANKERJA-42-1718000000000",
        ...     amount=150000,
        ...     payer_email="user@example.com",
        ...     description="Paket tes",
        ...     metadata={"userId": "42", "promoCode": "ABC"},
        ... )
        >>> invoice["invoice_url"]
    """

    INVOICE_PATH = "/v2/invoices"

    def __init__(self, secret_key: str, base_url: str, timeout: int = 30) -> None:
        if not secret_key:
            raise XenditError("XENDIT_SECRET_KEY is not configured.")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "XenditClient":
        return cls(
            secret_key=settings.XENDIT_SECRET_KEY,
            base_url=settings.XENDIT_API_BASE_URL,
            timeout=settings.XENDIT_REQUEST_TIMEOUT,
        )

    def create_invoice(
        self,
        *,
        external_id: str,
        amount,
        payer_email: str,
        description: str,
        metadata: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Create a hosted invoice.

        Returns:
            The invoice object returned by Xendit (contains ``id`` and ``invoice_url``)

        Raises:
            XenditError: On network errors or non-2xx responses
        """
        payload = {
            "external_id": external_id,
            "amount": amount,
            "payer_email": payer_email,
            "description": description,
            "metadata": metadata,
        }

        try:
            response = requests.post(
                f"{self.base_url}{self.INVOICE_PATH}",
                json=payload,
                auth=(self.secret_key, ""),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise XenditError("Timeout while creating Xendit invoice.") from e
        except requests.exceptions.RequestException as e:
            raise XenditError(f"Xendit request failed: {e}") from e

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            raise XenditError(
                "Xendit rejected the invoice request.",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            invoice = response.json()
        except ValueError as e:
            raise XenditError(
                "Xendit returned a malformed invoice response.",
                status_code=response.status_code,
                response_body=response.text,
            ) from e
        if not isinstance(invoice, dict) or not invoice.get("invoice_url"):
            raise XenditError(
                "Xendit invoice response has no invoice_url.",
                status_code=response.status_code,
                response_body=invoice,
            )

        logger.info(
            "Created Xendit invoice %s for external_id=%s.",
            invoice.get("id"),
            external_id,
        )
        return invoice
