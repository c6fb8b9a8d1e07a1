"""HTTP client for the pricing API."""
import json
import socket
import urllib.request
import urllib.error
from typing import Optional

from app.services.config import get_fetch_timeout_seconds, get_user_agent


class PricingAPIError(Exception):
    """A pricing API call did not produce a usable result."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class PricingAPIClient:
    """Thin urllib client for /api/gold-price, /api/exchange-rate and /api/calculate-price."""

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout if timeout is not None else get_fetch_timeout_seconds()

    def _call(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        url = f"{self._base_url}{path}"
        headers = {'User-Agent': get_user_agent(), 'Accept': 'application/json'}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode('utf-8')
            headers['Content-Type'] = 'application/json'

        try:
            req = urllib.request.Request(url, data=data, headers=headers, method=method)
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                body = json.loads(response.read().decode('utf-8'))
        except urllib.error.HTTPError as e:
            message = f"HTTP error: {e.code}"
            try:
                detail = json.loads(e.read().decode('utf-8'))
                message = detail.get('message') or detail.get('error') or message
            except (json.JSONDecodeError, AttributeError, ValueError):
                pass
            raise PricingAPIError(message, status=e.code)
        except urllib.error.URLError as e:
            raise PricingAPIError(f"Network error: {e.reason}")
        except (socket.timeout, TimeoutError):
            raise PricingAPIError(f"Timed out after {self._timeout}s")
        except json.JSONDecodeError:
            raise PricingAPIError("Invalid JSON response")

        if not body.get('success', False):
            raise PricingAPIError(body.get('message') or body.get('error') or 'Request failed')
        return body

    def get_gold_price(self) -> dict:
        return self._call('GET', '/api/gold-price')

    def get_exchange_rate(self) -> dict:
        return self._call('GET', '/api/exchange-rate')

    def calculate_price(self, request: dict) -> dict:
        return self._call('POST', '/api/calculate-price', request)
