import logging
from typing import Optional

import requests

import config

logger = logging.getLogger(__name__)

TRANSPORT_MESSAGE = "Failed to reach the analysis service"
TIMEOUT_MESSAGE = "Analysis timed out. Please try again."
BAD_REPLY_MESSAGE = "Analysis service returned an unreadable response"
NO_ANALYSIS_MESSAGE = "No analysis data received"
SOFT_FAILURE_WARNING = "Analysis completed but response format was unexpected"


class AnalysisFailed(Exception):
    pass


class ScanAnalysis:
    """Holds the state of one scan analysis and talks to the proxy.

    Exactly one of ``analysis`` / ``error`` is set after ``analyze``
    returns. A soft failure (model reply that could not be parsed) still
    sets ``analysis`` to the raw payload, plus a ``warning``.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.url = url or config.ANALYZE_SCAN_URL
        self.timeout = timeout if timeout is not None else config.CLIENT_TIMEOUT_SECONDS
        self.session = session or requests.Session()

        self.is_analyzing = False
        self.analysis = None
        self.error = None
        self.warning = None

    @property
    def is_soft_failure(self) -> bool:
        return isinstance(self.analysis, dict) and bool(self.analysis.get("parseError"))

    def _post(self, body: dict) -> dict:
        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.Timeout:
            raise AnalysisFailed(TIMEOUT_MESSAGE)
        except requests.RequestException as e:
            logger.error("Analysis request failed: %s", e)
            raise AnalysisFailed(TRANSPORT_MESSAGE)

        try:
            data = response.json()
        except ValueError:
            logger.error("Non-JSON reply from proxy (status %s)", response.status_code)
            raise AnalysisFailed(BAD_REPLY_MESSAGE)

        if not isinstance(data, dict):
            raise AnalysisFailed(BAD_REPLY_MESSAGE)
        if data.get("error"):
            raise AnalysisFailed(str(data["error"]))
        if response.status_code >= 400:
            raise AnalysisFailed(f"Analysis service error: {response.status_code}")
        return data

    def analyze(self, image_base64: str, scan_type: str, mime_type: Optional[str] = None):
        self.is_analyzing = True
        self.error = None
        self.analysis = None
        self.warning = None

        body = {"imageBase64": image_base64, "scanType": scan_type}
        if mime_type:
            body["mimeType"] = mime_type

        try:
            data = self._post(body)
            analysis = data.get("analysis")
            if not analysis:
                raise AnalysisFailed(NO_ANALYSIS_MESSAGE)
            if not isinstance(analysis, dict):
                logger.error("Analysis payload is a %s, expected an object", type(analysis).__name__)
                raise AnalysisFailed(BAD_REPLY_MESSAGE)

            if analysis.get("parseError"):
                self.warning = SOFT_FAILURE_WARNING
                logger.warning(SOFT_FAILURE_WARNING)
                logger.debug("Raw AI response: %s", analysis.get("rawResponse"))
            self.analysis = analysis

        except AnalysisFailed as e:
            self.error = str(e)
            logger.error("Analysis error: %s", self.error)
        finally:
            self.is_analyzing = False

        return self.analysis

    def reset(self):
        self.analysis = None
        self.error = None
        self.warning = None
