"""
Free-text feedback classification and rejection routing.

Callers should pass an explicit Approve/Reject/Edit action. These helpers
turn a plain feedback string into one when that is all a caller has. The
keyword sets are routing policy and may be tuned; the three-way branch
(pivot to requirements, pivot to design, retry in place) is fixed.
"""

import re

from stagewright.domain.models import (
    Approve,
    Edit,
    FeedbackAction,
    Reject,
    StageId,
)

# Short abbreviations match as whole words; longer terms match anywhere
REQUIREMENT_KEYWORDS = ("requirement", "prd")
DESIGN_KEYWORDS = ("design", "ui")

_ABBREVIATION_MAX_LEN = 3


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    terms = [
        rf"\b{re.escape(k)}\b" if len(k) <= _ABBREVIATION_MAX_LEN else re.escape(k)
        for k in keywords
    ]
    return re.compile("|".join(terms), re.IGNORECASE)


_REQUIREMENT_PATTERN = _keyword_pattern(REQUIREMENT_KEYWORDS)
_DESIGN_PATTERN = _keyword_pattern(DESIGN_KEYWORDS)


def classify_feedback(feedback: str, pending_content: str = "") -> FeedbackAction:
    """
    Classify free-text feedback.

    "reject" anywhere in the text wins, then "edit"; anything else approves.
    An edit classified from text has no new content of its own, so the
    pending content (possibly already edited in place by the caller) is
    committed.
    """
    lowered = feedback.lower()
    if "reject" in lowered:
        return Reject(reason=feedback)
    if "edit" in lowered:
        return Edit(content=pending_content)
    return Approve()


def route_rejection(feedback: str, current: StageId) -> StageId:
    """Pick the stage a rejection sends the run back to."""
    if _REQUIREMENT_PATTERN.search(feedback):
        return StageId.PRD
    if _DESIGN_PATTERN.search(feedback):
        return StageId.DESIGN
    return current
