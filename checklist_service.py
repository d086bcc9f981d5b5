"""
Checklist generation pipeline: validate, admit, call Claude, sanitize.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from claude_client import ChecklistGenerator
from models import GenerationRequest
from quota import QuotaTracker
from sanitizer import sanitize
from utils import utc_now

logger = logging.getLogger(__name__)


class ChecklistService:
    def __init__(
        self,
        generator: ChecklistGenerator,
        quota: Optional[QuotaTracker] = None,
        quota_charge: str = "admission",
        clock: Callable[[], datetime] = utc_now,
    ):
        self.generator = generator
        self.quota = quota or QuotaTracker()
        self.quota_charge = quota_charge
        self.clock = clock

    def generate(self, payload: Dict[str, Any], now: Optional[datetime] = None) -> bytes:
        """Returns ASCII JSON checklist bytes or raises a ChecklistError"""
        request = GenerationRequest.from_payload(payload)
        now = now or self.clock()

        # With "admission" charging the attempt is spent even if the call fails
        admission = self.quota.admit(request.user_id, request.task_id, now)
        try:
            raw_text = self.generator.generate_text(request)
            body = sanitize(raw_text)
        except Exception as e:
            logger.error(
                "Checklist generation failed for user %s task %s: %s",
                request.user_id, request.task_id, e,
            )
            if self.quota_charge == "success":
                self.quota.refund(admission)
            raise

        logger.info(
            "Generated checklist for user %s task %s (%d bytes)",
            request.user_id, request.task_id, len(body),
        )
        return body
