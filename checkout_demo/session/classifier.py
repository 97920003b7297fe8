"""Classification of widget failure messages."""

from typing import Iterable, List, Optional


class DuplicateOrderClassifier:
    """
    Recognizes "order already paid / duplicate order" failures.

    Matching is a case-insensitive substring test against configured phrases.
    The backend's wording is not a stable contract, so the phrases live in
    settings (``DUPLICATE_ORDER_PHRASES``) rather than here.
    """

    def __init__(self, phrases: Iterable[str]):
        self.phrases: List[str] = [p.strip().casefold() for p in phrases if p and p.strip()]

    def match(self, message: Optional[str]) -> Optional[str]:
        """Return the phrase found in ``message``, or None."""
        if not message:
            return None
        text = message.casefold()
        for phrase in self.phrases:
            if phrase in text:
                return phrase
        return None

    def is_duplicate_order(self, message: Optional[str]) -> bool:
        return self.match(message) is not None
