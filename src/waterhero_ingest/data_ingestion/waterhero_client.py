"""
WaterHero API client for collecting water meter readings
"""

import json
import requests
from datetime import datetime
from typing import List, Optional
from loguru import logger

from ..config import IngestConfig
from ..errors import DecodeError, TransportError
from ..models import FetchRequest, Reading, ReadingsResponse, to_millis


class WaterHeroClient:
    """Client for the WaterHero /get/readings endpoint (one time window per request)."""

    def __init__(self, config: IngestConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        # The endpoint only answers requests that look like they come from the web app
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Cookie': f'connect.sid={config.session_cookie}',
            'Origin': config.origin,
            'X-Requested-With': 'XMLHttpRequest',
        })

    def build_request(self, start: datetime, end: datetime) -> FetchRequest:
        return FetchRequest(
            device_id=self.config.device_id,
            email=self.config.email,
            from_ms=to_millis(start),
            to_ms=to_millis(end),
        )

    def fetch_readings(self, start: datetime, end: datetime) -> List[Reading]:
        """
        Fetch readings in [start, end).

        The response's success/code fields are not used to filter: whatever
        is in `data` is returned, in API order.

        Raises:
            TransportError: request could not be sent or the body not read
            DecodeError: body is not the expected JSON envelope
        """
        return self.fetch_payload(start, end).readings

    def fetch_payload(self, start: datetime, end: datetime) -> ReadingsResponse:
        request = self.build_request(start, end)

        logger.debug(
            f"Request WaterHero: {self.config.api_url} device={request.device_id} "
            f"from={request.from_ms} to={request.to_ms}"
        )

        try:
            response = self.session.post(
                self.config.api_url,
                data=json.dumps(request.to_payload()),
                timeout=self.config.request_timeout,
            )
            body = response.text
        except requests.exceptions.RequestException as e:
            raise TransportError(f"request to {self.config.api_url} failed: {e}") from e

        if not response.ok:
            logger.warning(
                f"WaterHero returned HTTP {response.status_code} for "
                f"{request.from_ms}-{request.to_ms}"
            )

        payload = self._parse_payload(body)

        if not payload.success:
            logger.warning(
                f"WaterHero response success=false (code {payload.code}) for "
                f"{request.from_ms}-{request.to_ms}, forwarding {len(payload.readings)} readings anyway"
            )

        return payload

    def _parse_payload(self, body: str) -> ReadingsResponse:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"parse error: {e}", body=body) from e

        if not isinstance(data, dict):
            raise DecodeError("parse error: response is not a JSON object", body=body)

        records = data.get("data")
        if records is None:
            records = []
        if not isinstance(records, list):
            raise DecodeError("parse error: 'data' is not an array", body=body)

        code = data.get("code", 0)
        if not isinstance(code, int) or isinstance(code, bool):
            raise DecodeError(f"parse error: 'code' is not an integer: {code!r}", body=body)

        success = data.get("success", False)
        if not isinstance(success, bool):
            raise DecodeError(f"parse error: 'success' is not a boolean: {success!r}", body=body)

        readings = [Reading.from_api(record, body=body) for record in records]

        return ReadingsResponse(readings=readings, success=success, code=code)
