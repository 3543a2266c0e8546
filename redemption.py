#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import requests

from config import Config
from extractor import extract_campaign_code, build_redeem_url


DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Upstream error code -> message shown to the user
ERROR_MESSAGES = {
    'VOUCHER_NOT_FOUND': 'ไม่พบซองของขวัญนี้ กรุณาตรวจสอบลิงก์อีกครั้ง',
    'VOUCHER_EXPIRED': 'ซองของขวัญหมดอายุแล้ว',
    'VOUCHER_OUT_OF_STOCK': 'ซองของขวัญถูกรับครบแล้ว',
    'CANNOT_GET_OWN_VOUCHER': 'ไม่สามารถรับซองของขวัญของตัวเองได้',
    'CONDITION_NOT_MET': 'ไม่ตรงตามเงื่อนไขการรับซองของขวัญ',
    'TARGET_USER_REDEEMED': 'เบอร์นี้เคยรับซองของขวัญนี้ไปแล้ว',
}
DEFAULT_ERROR_TEMPLATE = 'ไม่สามารถรับซองของขวัญได้: {message}'


def describe_upstream_error(code, message):
    if code in ERROR_MESSAGES:
        return ERROR_MESSAGES[code]
    return DEFAULT_ERROR_TEMPLATE.format(message=message)


# ------------------------------------------------------------------
# Outcomes
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    payload: Any
    ok = True
    http_status = 200

    @property
    def message(self):
        return "รับซองของขวัญสำเร็จ"


@dataclass(frozen=True)
class UpstreamError:
    """Upstream answered with a non-2xx status."""
    http_status: int
    message: str
    code: Optional[str] = None
    upstream: Any = None
    ok = False

    @property
    def user_message(self):
        return describe_upstream_error(self.code, self.message)


@dataclass(frozen=True)
class NetworkError:
    """Request went out but no response came back."""
    reason: str
    ok = False
    http_status = 500

    @property
    def message(self):
        return self.reason


@dataclass(frozen=True)
class ValidationError:
    message: str
    ok = False
    http_status = 400


@dataclass(frozen=True)
class ExtractionError:
    message: str
    ok = False
    http_status = 400


@dataclass(frozen=True)
class UnclassifiedError:
    """Anything else that went wrong preparing or sending the request."""
    error: Exception
    ok = False
    http_status = 500

    @property
    def message(self):
        return str(self.error) or type(self.error).__name__


RedemptionOutcome = (Success, UpstreamError, NetworkError,
                     ValidationError, ExtractionError, UnclassifiedError)


# ------------------------------------------------------------------
# Request
# ------------------------------------------------------------------

@dataclass(frozen=True)
class RedemptionRequest:
    mobile_number: str
    campaign_code: str

    def url(self, base_url):
        return build_redeem_url(self.campaign_code, base_url)

    @property
    def payload(self):
        return {"mobile": self.mobile_number}


def _decode_body(content, encoding):
    try:
        return json.loads(content)
    except ValueError:
        return content.decode(encoding or "utf-8", errors="replace")


def _upstream_code(body):
    if not isinstance(body, dict):
        return None
    if body.get("code"):
        return body["code"]
    status = body.get("status")
    if isinstance(status, dict):
        return status.get("code")
    return None


def mask_mobile(mobile_number):
    """0812345678 -> ******5678"""
    mobile_number = str(mobile_number)
    return "*" * max(len(mobile_number) - 4, 0) + mobile_number[-4:]


class TrueMoneyVoucherRedemption:
    """
    Redeems TrueMoney gift vouchers for a mobile number.

    Every ``redeem`` call opens its own ``requests.Session`` so cookies and
    pooled connections never leak from one caller to the next. Passing
    ``session`` reuses that object for every call instead, which is meant for
    tests: anything with a requests-compatible ``post`` method will do.

    ``config.request_timeout`` caps the whole call, body included. requests
    only applies it per socket operation, so the body is streamed and checked
    against a deadline.
    """

    NO_RESPONSE = "No response from campaign server"
    NETWORK_ERRORS = (
        requests.exceptions.Timeout,
        requests.exceptions.ConnectionError,
        requests.exceptions.ChunkedEncodingError,
    )

    def __init__(self, config=None, session=None):
        self.logger = logging.getLogger(__name__)
        self.config = config or Config()
        self.session = session

    def _read_body(self, response, deadline):
        content = bytearray()
        # one byte per read: urllib3 blocks until a whole chunk arrives
        for chunk in response.iter_content(chunk_size=1):
            content += chunk
            if time.monotonic() > deadline:
                raise requests.exceptions.ReadTimeout(
                    f"response not complete after {self.config.request_timeout_ms} ms")
        return bytes(content)

    def _post(self, session, redemption_request):
        deadline = time.monotonic() + self.config.request_timeout
        response = session.post(
            redemption_request.url(self.config.base_url),
            json=redemption_request.payload,
            headers=DEFAULT_HEADERS,
            timeout=self.config.request_timeout,
            stream=True,
        )
        try:
            return response.status_code, _decode_body(self._read_body(response, deadline), response.encoding)
        finally:
            response.close()

    def _send(self, redemption_request):
        if self.session is not None:
            return self._post(self.session, redemption_request)
        with requests.Session() as session:
            return self._post(session, redemption_request)

    def redeem(self, mobile_number, campaign_link):
        if not mobile_number or not campaign_link:
            return ValidationError("mobile_number and campaign_link are required")

        campaign_code = extract_campaign_code(campaign_link)
        if not campaign_code:
            self.logger.warning(f"Cannot extract campaign code from {campaign_link!r}")
            return ExtractionError("Cannot extract campaign code from campaign_link")

        masked = mask_mobile(mobile_number)
        redemption_request = RedemptionRequest(mobile_number, campaign_code)
        self.logger.info(f"Redeeming {campaign_code} for {masked}")
        try:
            status_code, body = self._send(redemption_request)
        except self.NETWORK_ERRORS as e:
            self.logger.error(f"No response redeeming {campaign_code}: {e}")
            return NetworkError(self.NO_RESPONSE)
        except Exception as e:
            self.logger.exception(f"Redemption request failed for {campaign_code}")
            return UnclassifiedError(e)

        if 200 <= status_code < 300:
            self.logger.info(f"{masked}: redeemed {campaign_code}")
            return Success(body)

        message = f"HTTP {status_code} - {json.dumps(body, ensure_ascii=False)}"
        self.logger.warning(f"{masked}: {message} - {campaign_code}")
        return UpstreamError(
            http_status=status_code,
            message=message,
            code=_upstream_code(body),
            upstream=body,
        )
