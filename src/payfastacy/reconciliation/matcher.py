"""Matching of transfer memos against pending payments."""

import logging
import re
from typing import List, Sequence

from ..config import MatchPolicy
from ..database.models import Payment
from ..errors import AmbiguousMatch, NoMatchingPayment

logger = logging.getLogger(__name__)


def memo_contains(memo: str, token: str, whole_token: bool = False) -> bool:
    """Check whether ``token`` occurs in a transfer memo.

    Banks wrap the memo with their own text, so a plain substring test is the
    default. With ``whole_token`` the token must not touch other letters or
    digits on either side.

    Args:
        memo: Free-text memo from the webhook.
        token: Content token of a pending payment.
        whole_token: Require alphanumeric boundaries around the token.

    Returns:
        True if the token is present.
    """
    if not token:
        return False
    if not whole_token:
        return token in memo
    pattern = rf"(?<![0-9A-Za-z]){re.escape(token)}(?![0-9A-Za-z])"
    return re.search(pattern, memo) is not None


class MemoMatcher:
    """Selects the payment a webhook memo refers to."""

    def __init__(self, policy: MatchPolicy = MatchPolicy.FIRST, whole_token: bool = False):
        """Initialize the matcher.

        Args:
            policy: ``FIRST`` keeps the first candidate when several match,
                ``STRICT`` refuses to choose.
            whole_token: Require the token to stand alone in the memo.
        """
        self.policy = MatchPolicy(policy)
        self.whole_token = whole_token

    def filter(self, memo: str, candidates: Sequence[Payment]) -> List[Payment]:
        """Keep candidates whose content appears in ``memo``, preserving order."""
        return [p for p in candidates if memo_contains(memo, p.content, self.whole_token)]

    def select(self, memo: str, candidates: Sequence[Payment]) -> Payment:
        """Pick the single payment to reconcile.

        Args:
            memo: Free-text memo from the webhook.
            candidates: Pending payments with the transferred amount, in
                query order.

        Returns:
            The chosen Payment.

        Raises:
            NoMatchingPayment: If no candidate's content is in the memo.
            AmbiguousMatch: If several match and the policy is ``STRICT``.
        """
        matches = self.filter(memo, candidates)

        if not matches:
            raise NoMatchingPayment()

        if len(matches) > 1:
            ids = [p.id for p in matches]
            if self.policy is MatchPolicy.STRICT:
                logger.warning(f"Memo matches payments {ids}; refusing to choose")
                raise AmbiguousMatch(payment_ids=ids)
            logger.warning(f"Memo matches payments {ids}; using first ({ids[0]})")

        return matches[0]
