"""
Text heuristics that turn free-form task text into quick-action links.

Each pass is an independent regular expression scan. Matches are not
normalized (beyond digit-stripping for phone numbers) and overlapping
matches are not de-duplicated, so false positives are expected.
"""

import re
from urllib.parse import quote, urlparse

from studyflow.schemas.analysis import SuggestiveAction

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z|]{2,}\b")
PHONE_RE = re.compile(r"(\+?\d{1,4}[-.\s]?)?(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}|\d{10})", re.ASCII)
URL_RE = re.compile(r"https?://[^\s]+")
ADDRESS_RE = re.compile(r"\b(?:visit|go to|meet at|address|location)\s+([^.!?]+)", re.IGNORECASE)
MEETING_RE = re.compile(r"\b(?:meeting|schedule|appointment|call|event)\b", re.IGNORECASE)
DOCUMENT_RE = re.compile(
    r"\b(?:write|create|draft|document|report|proposal|presentation)\b", re.IGNORECASE
)
SEARCH_RE = re.compile(r"\b(?:research|search|find|look up|investigate)\s+([^.!?]+)", re.IGNORECASE)

MIN_PHONE_DIGITS = 10
MIN_LOCATION_LENGTH = 4
MIN_QUERY_LENGTH = 3

GOOGLE_MAPS_URL = "https://maps.google.com/?q={}"
GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render?action=TEMPLATE&text={}"
GOOGLE_DOCS_CREATE_URL = "https://docs.google.com/document/create"
GOOGLE_SEARCH_URL = "https://www.google.com/search?q={}"


def _encode(value: str) -> str:
    return quote(value, safe="")


def _email_actions(text: str) -> list[SuggestiveAction]:
    return [
        SuggestiveAction(
            type="email",
            label=f"Email {email}",
            url=f"mailto:{email}",
            data={"email": email},
        )
        for email in EMAIL_RE.findall(text)
    ]


def _phone_actions(text: str) -> list[SuggestiveAction]:
    actions = []
    for match in PHONE_RE.finditer(text):
        phone = match.group(0)
        digits = re.sub(r"\D", "", phone)
        if len(digits) >= MIN_PHONE_DIGITS:
            actions.append(
                SuggestiveAction(
                    type="phone",
                    label=f"Call {phone}",
                    url=f"tel:{digits}",
                    data={"phone": digits},
                )
            )
    return actions


def _url_actions(text: str) -> list[SuggestiveAction]:
    actions = []
    for url in URL_RE.findall(text):
        try:
            host = urlparse(url).hostname or url
        except ValueError:
            # Malformed netloc such as an unclosed IPv6 bracket
            host = url
        actions.append(
            SuggestiveAction(
                type="website",
                label=f"Visit {host}",
                url=url,
                data={"url": url},
            )
        )
    return actions


def _location_actions(text: str) -> list[SuggestiveAction]:
    actions = []
    for match in ADDRESS_RE.finditer(text):
        location = match.group(1).strip()
        if len(location) >= MIN_LOCATION_LENGTH:
            actions.append(
                SuggestiveAction(
                    type="maps",
                    label=f"Navigate to {location}",
                    url=GOOGLE_MAPS_URL.format(_encode(location)),
                    data={"location": location},
                )
            )
    return actions


def _calendar_actions(text: str) -> list[SuggestiveAction]:
    if not MEETING_RE.search(text):
        return []
    return [
        SuggestiveAction(
            type="calendar",
            label="Add to Calendar",
            url=GOOGLE_CALENDAR_URL.format(_encode(text)),
            data={"event": text},
        )
    ]


def _document_actions(text: str) -> list[SuggestiveAction]:
    if not DOCUMENT_RE.search(text):
        return []
    return [
        SuggestiveAction(
            type="document",
            label="Create Document",
            url=GOOGLE_DOCS_CREATE_URL,
            data={"type": "document"},
        )
    ]


def _search_actions(text: str) -> list[SuggestiveAction]:
    actions = []
    for match in SEARCH_RE.finditer(text):
        query = match.group(1).strip()
        if len(query) >= MIN_QUERY_LENGTH:
            actions.append(
                SuggestiveAction(
                    type="search",
                    label=f'Search for "{query}"',
                    url=GOOGLE_SEARCH_URL.format(_encode(query)),
                    data={"query": query},
                )
            )
    return actions


_PASSES = (
    _email_actions,
    _phone_actions,
    _url_actions,
    _location_actions,
    _calendar_actions,
    _document_actions,
    _search_actions,
)


def extract_suggestive_actions(text: str) -> list[SuggestiveAction]:
    """
    Scan text for emails, phone numbers, URLs, locations and keywords.

    Returns actions in pass order: email, phone, website, maps, calendar,
    document, search.
    """
    actions: list[SuggestiveAction] = []
    for scan in _PASSES:
        actions.extend(scan(text))
    return actions
