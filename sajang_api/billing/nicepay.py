"""NicePay API client for subscription billing keys.

NicePay API Reference:
- Billing key expire: POST /v1/subscribe/{bid}/expire
"""

import base64
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from sajang_api.config import env
from sajang_api.errors import PaymentGatewayError, UpstreamError

logger = logging.getLogger(__name__)

RESULT_CODE_SUCCESS = "0000"


def make_sign_data(order_id: str, billing_id: str, edi_date: str, secret_key: str) -> str:
    """signData = hex(sha256(orderId + bid + ediDate + secretKey))"""
    return hashlib.sha256(f"{order_id}{billing_id}{edi_date}{secret_key}".encode()).hexdigest()


def make_edi_date(now: Optional[datetime] = None) -> str:
    """ISO 8601 UTC timestamp with milliseconds, e.g. 2026-10-19T03:04:05.678Z"""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class NicePayClient:
    """NicePay API client.

    Environment Variables:
    - NICEPAY_CLIENT_ID: Merchant client id
    - NICEPAY_SECRET_KEY: Merchant secret key
    - NICEPAY_BASE_URL: API base URL (default https://api.nicepay.co.kr)
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if client_id is None or secret_key is None:
            client_id, secret_key = env.get_nicepay_credentials()
        self.client_id = client_id
        self.secret_key = secret_key
        self.base_url = (base_url or env.get_nicepay_base_url()).rstrip("/")
        self._transport = transport

    def _get_auth_header(self) -> str:
        """Basic Auth: base64(client_id:secret_key)"""
        credentials = f"{self.client_id}:{self.secret_key}"
        return f"Basic {base64.b64encode(credentials.encode()).decode()}"

    async def expire_billing_key(
        self, billing_id: str, order_id: str, edi_date: Optional[str] = None
    ) -> dict:
        """Expire (delete) a subscription billing key.

        Args:
            billing_id: NicePay bid
            order_id: Merchant order id for this cancellation
            edi_date: Request timestamp (defaults to now)

        Returns:
            NicePay response body

        Raises:
            PaymentGatewayError: Transport failure, HTTP error or resultCode != "0000"
        """
        edi_date = edi_date or make_edi_date()
        url = f"{self.base_url}/v1/subscribe/{billing_id}/expire"
        payload = {
            "orderId": order_id,
            "ediDate": edi_date,
            "signData": make_sign_data(order_id, billing_id, edi_date, self.secret_key),
            "returnCharSet": "utf-8",
        }
        headers = {
            "Authorization": self._get_auth_header(),
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(url, headers=headers, json=payload, timeout=30.0)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "NicePay billing key expire HTTP error",
                extra={
                    "event": "nicepay.billing.expire_failed",
                    "order_id": order_id,
                    "status_code": e.response.status_code,
                },
            )
            raise PaymentGatewayError("구독 취소 처리 중 오류가 발생했습니다.") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "NicePay billing key expire request failed",
                extra={"event": "nicepay.billing.expire_failed", "order_id": order_id},
                exc_info=True,
            )
            raise PaymentGatewayError("구독 취소 처리 중 오류가 발생했습니다.") from e

        if result.get("resultCode") != RESULT_CODE_SUCCESS:
            logger.warning(
                "NicePay rejected billing key expire",
                extra={
                    "event": "nicepay.billing.expire_rejected",
                    "order_id": order_id,
                    "result_code": result.get("resultCode"),
                    "result_msg": result.get("resultMsg"),
                },
            )
            raise PaymentGatewayError(
                "빌링키 만료에 실패했습니다.",
                extras={"resultMsg": result.get("resultMsg")},
            )

        logger.info(
            "NicePay billing key expired",
            extra={"event": "nicepay.billing.expired", "order_id": order_id},
        )
        return result


def get_nicepay_client() -> NicePayClient:
    """FastAPI dependency: NicePay client from the environment.

    Raises:
        UpstreamError: If NicePay credentials are not configured
    """
    try:
        return NicePayClient()
    except ValueError as e:
        logger.error("NicePay not configured", extra={"event": "nicepay.config.missing"})
        raise UpstreamError("결제 설정이 올바르지 않습니다.") from e
