"""Heuristic importance scoring for individual messages."""

from typing import List, Optional

from ..types import Entry, Role


ERROR_KEYWORDS = ["error", "problem", "issue"]

IMPORTANT_KEYWORDS = [
    "important", "remember", "summary", "conclusion",
    "result", "solution", "explanation", "because", "therefore",
]

EDUCATIONAL_KEYWORDS = [
    "learn", "concept", "theory", "formula",
    "definition", "example", "step", "method",
]


class ImportanceScorer:
    """
    Scores a message by how likely it is to matter later.

    Formula:
        min(len / 100, 5)
        + 3 if it asks a question
        + 4 if it mentions an error or problem
        + 2 per important keyword, + 1.5 per educational keyword
        + 1 for user messages, + 2 for long model answers (> 200 chars)
        + 3 if files are attached

    Keywords are matched as lowercase substrings, once per keyword.
    """

    def __init__(
        self,
        important_keywords: Optional[List[str]] = None,
        educational_keywords: Optional[List[str]] = None,
        error_keywords: Optional[List[str]] = None,
    ):
        self.important_keywords = IMPORTANT_KEYWORDS if important_keywords is None else important_keywords
        self.educational_keywords = EDUCATIONAL_KEYWORDS if educational_keywords is None else educational_keywords
        self.error_keywords = ERROR_KEYWORDS if error_keywords is None else error_keywords

    def score(self, message: Entry) -> float:
        text = (message.text or "").lower()
        score = min(len(text) / 100, 5)

        if "?" in text:
            score += 3

        if any(keyword in text for keyword in self.error_keywords):
            score += 4

        score += 2 * sum(1 for keyword in self.important_keywords if keyword in text)
        score += 1.5 * sum(1 for keyword in self.educational_keywords if keyword in text)

        if message.role == Role.USER:
            score += 1
        if message.role == Role.MODEL and len(text) > 200:
            score += 2

        if message.files:
            score += 3

        return score

    def is_salient(self, message: Entry, min_length: int = 100) -> bool:
        """Cheap check used for linked conversations: a question, flagged important, or long."""
        text = message.text or ""
        return "?" in text or "important" in text or len(text) > min_length
