"""
Plagiarism Matchers - supply the plagiarism input to the risk scorer

A matcher answers one question: given a session, what is its 0-100
plagiarism estimate (or None when nothing was checked)? Swapping in a real
text-similarity model means writing another matcher, nothing else changes.
"""

import logging
from typing import Optional

from examguard.models.plagiarism import PlagiarismCheck

logger = logging.getLogger(__name__)


class PlagiarismMatcher:
    """Strategy interface for plagiarism estimates"""

    def estimate(self, session_id: int) -> Optional[int]:
        raise NotImplementedError


class StoredCheckMatcher(PlagiarismMatcher):
    """Uses the most recent recorded PlagiarismCheck for the session"""

    def estimate(self, session_id: int) -> Optional[int]:
        if session_id is None:
            return None

        check = (
            PlagiarismCheck.query
            .filter_by(session_id=session_id)
            .order_by(PlagiarismCheck.checked_at.desc(), PlagiarismCheck.id.desc())
            .first()
        )
        if check is None:
            return None

        logger.debug(f"Plagiarism input for session {session_id}: check={check.id} score={check.plagiarism_score}")
        return check.plagiarism_score
