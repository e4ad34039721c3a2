# gaming_desk/infrastructure/sms_gateway.py
from __future__ import annotations

import logging
from typing import Any, Dict

import requests

from gaming_desk.domain.errors import DispatchError, DispatchReason

log = logging.getLogger("infra.sms_gateway")


class Fast2SmsGateway:
    """
    Quick-route bulk SMS over HTTP GET. One request per call, no retries:
    the expiry monitor's tick decides when to try again.
    """

    def __init__(
        self,
        api_key: str,
        url: str = "https://www.fast2sms.com/dev/bulkV2",
        timeout_s: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.timeout_s = timeout_s
        self._http = session or requests.Session()

    def send(self, digits: str, message: str) -> Dict[str, Any]:
        if len(digits) != 10 or not digits.isdigit():
            raise DispatchError(
                f"Invalid phone number length: {len(digits)}. Must be 10 digits.",
                DispatchReason.INVALID_NUMBER,
            )

        params = {
            "authorization": self.api_key,
            "route": "q",
            "message": message,
            "language": "english",
            "flash": "0",
            "numbers": digits,
        }
        log.info("Sending SMS to %s", digits)
        try:
            r = self._http.get(self.url, params=params, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise DispatchError(f"SMS gateway unreachable: {e}", DispatchReason.TRANSPORT) from e

        try:
            data = r.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise DispatchError(
                f"SMS gateway returned HTTP {r.status_code} without a JSON body",
                DispatchReason.TRANSPORT,
            )
        log.debug("SMS API response: %s", data)

        msg = data.get("message") or f"SMS gateway returned failure (HTTP {r.status_code})"
        if isinstance(msg, list):
            msg = "; ".join(str(m) for m in msg)
        if data.get("return") is False:
            raise DispatchError(str(msg), DispatchReason.REJECTED)
        if r.status_code >= 400:
            raise DispatchError(f"HTTP {r.status_code}: {msg}", DispatchReason.TRANSPORT)
        return data
