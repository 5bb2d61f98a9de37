"""LeetCode GraphQL client used to look up the day's puzzles."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .models import ContentItem

LOGGER = logging.getLogger(__name__)

BASE_URL = "https://leetcode.com"
GRAPHQL_URL = f"{BASE_URL}/graphql/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.3"
)

DAILY_QUERY = {
    "query": (
        "query questionOfToday { activeDailyCodingChallengeQuestion "
        "{ date link question { difficulty } } }"
    ),
    "variables": {},
    "operationName": "questionOfToday",
}

RANDOM_QUESTION_QUERY = (
    "query randomQuestion($categorySlug: String, $filters: QuestionListFilterInput) "
    "{ randomQuestion(categorySlug: $categorySlug, filters: $filters) { titleSlug } }"
)


class FetchError(RuntimeError):
    """The content provider could not be reached or answered with garbage."""


def build_query(difficulty: str) -> Dict[str, Any]:
    if difficulty == "daily":
        return DAILY_QUERY
    return {
        "query": RANDOM_QUESTION_QUERY,
        "variables": {"categorySlug": "", "filters": {"difficulty": difficulty.upper()}},
        "operationName": "randomQuestion",
    }


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def extract_link(difficulty: str, data: Dict[str, Any]) -> Optional[str]:
    """Resolve the deliverable URL from the ``data`` object of a response."""
    if difficulty == "daily":
        link = _dig(data, "activeDailyCodingChallengeQuestion", "link")
        if isinstance(link, str) and link:
            return f"{BASE_URL}{link}"
        return None
    slug = _dig(data, "randomQuestion", "titleSlug")
    if isinstance(slug, str) and slug:
        return f"{BASE_URL}/problems/{slug}/"
    return None


class LeetCodeFetcher:
    """Fetches one :class:`ContentItem` per call. Holds no per-call state."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch(self, difficulty: Optional[str] = None) -> ContentItem:
        difficulty = (difficulty or "daily").lower()
        headers = {
            "Content-Type": "application/json",
            "Origin": BASE_URL,
            "Referer": BASE_URL,
            "User-Agent": USER_AGENT,
        }
        LOGGER.info("Requesting %s question from LeetCode", difficulty)
        try:
            resp = self.session.post(
                GRAPHQL_URL, headers=headers, json=build_query(difficulty), timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise FetchError(f"LeetCode request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise FetchError(f"LeetCode responded with {resp.status_code}: {resp.text[:120]}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise FetchError("LeetCode returned a non-JSON body") from exc

        if not isinstance(payload, dict) or "data" not in payload:
            raise FetchError("LeetCode response is missing the 'data' field")

        link = extract_link(difficulty, payload["data"])
        if link is None:
            LOGGER.info("No %s question found in LeetCode response", difficulty)
        return ContentItem(difficulty=difficulty, link=link)
