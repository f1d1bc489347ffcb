from __future__ import annotations

from enum import StrEnum


class DeliveryOutcome(StrEnum):
    DELIVERED = "delivered"
    DELIVERED_WITH_CONTINUATION_PROMPT = "delivered_with_continuation_prompt"
    DEGRADED_DELIVERED = "degraded_delivered"
    # Every variant failed, the plain-text link went through.
    DEGRADED_LINK_SENT = "degraded_link_sent"
    DEGRADED_FAILED = "degraded_failed"
    SKIPPED = "skipped"
