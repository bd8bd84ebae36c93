"""Score passback to the external learning platform (LTI 1.1 Basic Outcomes).

The publisher builds a ``replaceResultRequest`` POX envelope and posts it to
the assignment's outcome URL. Request signing is delegated to an ``auth``
factory returning a ``requests`` auth object for the consumer's credentials.
"""

import logging
import uuid
from typing import Any, Callable, Protocol
from xml.sax.saxutils import escape

import requests
from django.conf import settings
from django.utils.module_loading import import_string

from QuizPeersApp.core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

REPLACE_RESULT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<imsx_POXEnvelopeRequest xmlns="http://www.imsglobal.org/services/ltiv1p1/xsd/imsoms_v1p0">
  <imsx_POXHeader>
    <imsx_POXRequestHeaderInfo>
      <imsx_version>V1.0</imsx_version>
      <imsx_messageIdentifier>{message_id}</imsx_messageIdentifier>
    </imsx_POXRequestHeaderInfo>
  </imsx_POXHeader>
  <imsx_POXBody>
    <replaceResultRequest>
      <resultRecord>
        <sourcedGUID>
          <sourcedId>{sourced_id}</sourcedId>
        </sourcedGUID>
        <result>
          <resultTotalScore>
            <language>en</language>
            <textString>{score}</textString>
          </resultTotalScore>
        </result>
      </resultRecord>
    </replaceResultRequest>
  </imsx_POXBody>
</imsx_POXEnvelopeRequest>"""


class ScorePublisher(Protocol):
    def publish(self, consumer, score: float | None, return_id: str | None, outcome_url: str | None) -> None:
        ...


def build_replace_result(score: float | None, return_id: str | None) -> str:
    """Render the replaceResult envelope for one learner's score."""
    return REPLACE_RESULT_TEMPLATE.format(
        message_id=uuid.uuid4().hex,
        sourced_id=escape(str(return_id or "")),
        score="" if score is None else score,
    )


class LtiOutcomePublisher:
    """Posts replaceResult requests with ``requests``; any failure becomes UpstreamFailure."""

    def __init__(
        self,
        timeout: float | None = None,
        session: requests.Session | None = None,
        auth_factory: Callable[[Any], Any] | None = None,
    ):
        self._timeout = float(timeout or settings.QUIZPEERS_SCORE_PUBLISH_TIMEOUT)
        self._session = session or requests.Session()
        self._auth_factory = auth_factory

    def publish(self, consumer, score: float | None, return_id: str | None, outcome_url: str | None) -> None:
        if not outcome_url:
            raise UpstreamFailure("Assignment has no outcome URL")
        body = build_replace_result(score, return_id)
        auth = self._auth_factory(consumer) if self._auth_factory else None
        try:
            resp = self._session.post(
                outcome_url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/xml"},
                auth=auth,
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("score passback failed url=%s sourced_id=%s err=%s", outcome_url, return_id, exc)
            raise UpstreamFailure(f"Score passback failed: {exc}") from exc


def get_score_publisher() -> ScorePublisher:
    """Instantiate the publisher configured in QUIZPEERS_SCORE_PUBLISHER."""
    return import_string(settings.QUIZPEERS_SCORE_PUBLISHER)()
