"""Capture Gateway - client for the local fingerprint device service

Wraps the two endpoints of the device service (SGIBIOSRV):
- SGIFPCapture: acquire an image and extract a template
- SGIMatchScore: compare two templates, score on a 0-199 scale

Both are form-encoded POSTs answering JSON with an integer ErrorCode (0 = success).
Device failures are raised as DeviceError subclasses, everything else that goes
wrong on the wire (unreachable, non-2xx, malformed body) as DeviceTransportError.
No retries: a failed capture is surfaced immediately.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
import urllib3
from urllib3.exceptions import InsecureRequestWarning

from fpgallery.config import (
    DEVICE_BASE_URL, CAPTURE_PATH, MATCH_SCORE_PATH, DEVICE_VERIFY_TLS,
    HTTP_GRACE_SECONDS, COMPARE_TIMEOUT_SECONDS, describe_device_error,
)
from fpgallery.errors import CaptureDeviceError, ComparisonRejected, DeviceTransportError
from fpgallery.models import CaptureConfig, CaptureResult


logger = logging.getLogger(__name__)


def _require_int(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass, reject it explicitly
    if not isinstance(value, int) or isinstance(value, bool):
        raise DeviceTransportError(f"Malformed device response: '{key}' missing or not an integer")
    return value


def _require_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise DeviceTransportError(f"Malformed device response: '{key}' missing or empty")
    return value


class CaptureGateway:
    """HTTP client for the capture and comparison endpoints.

    Args:
        base_url: Device service root, e.g. "https://localhost:8443"
        session: requests.Session (or compatible object with .post) to use
        verify_tls: Verify the device service certificate
        default_config: CaptureConfig used when capture() gets none
    """

    def __init__(
        self,
        base_url: str = DEVICE_BASE_URL,
        session: Optional[requests.Session] = None,
        verify_tls: bool = DEVICE_VERIFY_TLS,
        default_config: Optional[CaptureConfig] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.verify_tls = verify_tls
        self.default_config = default_config or CaptureConfig()

        if not verify_tls:
            # Self-signed localhost certificate; silence the per-request warning
            urllib3.disable_warnings(InsecureRequestWarning)

    # ========================================================================
    # TRANSPORT
    # ========================================================================

    def _post(self, path: str, form: Dict[str, str], timeout: float) -> Dict[str, Any]:
        """POST a form and return the decoded JSON object.

        Raises:
            DeviceTransportError: On connection failure, non-2xx status or a body
                that is not a JSON object
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.post(
                url,
                data=form,
                headers={'Content-Type': 'application/x-www-form-urlencoded'},
                timeout=timeout,
                verify=self.verify_tls,
            )
        except requests.RequestException as e:
            logger.warning(f"Device service unreachable at {url}: {e}")
            raise DeviceTransportError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise DeviceTransportError(f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise DeviceTransportError(f"Malformed device response: {e}") from e

        if not isinstance(data, dict):
            raise DeviceTransportError("Malformed device response: expected a JSON object")

        return data

    # ========================================================================
    # CAPTURE
    # ========================================================================

    def capture(self, config: Optional[CaptureConfig] = None) -> CaptureResult:
        """Acquire one fingerprint and extract its template.

        Args:
            config: Capture options (uses the gateway default if None)

        Returns:
            Populated CaptureResult

        Raises:
            CaptureDeviceError: Device answered with a non-zero ErrorCode
            DeviceTransportError: Service unreachable or malformed answer
        """
        config = config or self.default_config
        timeout = config.timeout_ms / 1000.0 + HTTP_GRACE_SECONDS

        data = self._post(CAPTURE_PATH, config.to_form(), timeout)

        code = _require_int(data, 'ErrorCode')
        if code != 0:
            description = describe_device_error(code)
            logger.info(f"Capture failed: {code} - {description}")
            raise CaptureDeviceError(code, description)

        try:
            result = CaptureResult(
                template=_require_str(data, 'TemplateBase64'),
                preview_image=data.get('BMPBase64') or "",
                quality_score=_require_int(data, 'ImageQuality'),
                nfiq_score=_require_int(data, 'NFIQ'),
            )
        except ValueError as e:
            raise DeviceTransportError(f"Malformed device response: {e}") from e

        logger.info(f"Capture OK (quality={result.quality_score}, nfiq={result.nfiq_score})")
        return result

    # ========================================================================
    # COMPARISON
    # ========================================================================

    def compare(
        self,
        template1: str,
        template2: str,
        template_format: Optional[str] = None,
        license_string: Optional[str] = None,
    ) -> int:
        """Compare two templates on the device.

        Args:
            template1: Probe template (base64)
            template2: Gallery template (base64)
            template_format: Template encoding (defaults to the capture config's)
            license_string: Licence string (defaults to the capture config's)

        Returns:
            MatchingScore (0-199)

        Raises:
            ComparisonRejected: Device answered with a non-zero ErrorCode
            DeviceTransportError: Service unreachable or malformed answer
        """
        form = {
            'Template1': template1,
            'Template2': template2,
            'licstr': self.default_config.license_string if license_string is None else license_string,
            'templateFormat': template_format or self.default_config.template_format,
        }

        data = self._post(MATCH_SCORE_PATH, form, COMPARE_TIMEOUT_SECONDS)

        code = _require_int(data, 'ErrorCode')
        if code != 0:
            raise ComparisonRejected(code)

        return _require_int(data, 'MatchingScore')
