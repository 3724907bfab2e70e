"""Schedule document parsing.

Turns a pentabarf-style conference schedule into ``{track_slug: Track}``.
Only markup that is not well formed is an error; events missing a slug,
title or track reference are skipped.
"""

import logging
import xml.etree.ElementTree as ET

from talks.domain.errors import ParseError
from talks.domain.models import Talk, Track

logger = logging.getLogger(__name__)

TALK_FIELDS = ("date", "start", "duration", "room", "url")


def _text(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    return "".join(element.itertext()).strip()


def _child_text(event: ET.Element, tag: str) -> str | None:
    return _text(event.find(f".//{tag}"))


def parse(document: str | bytes) -> dict[str, Track]:
    """Parse a schedule document.

    Raises:
        ParseError: If the document is not well-formed XML.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise ParseError(str(exc)) from exc

    events = list(root.iter("event"))
    event_tracks = {id(el) for event in events for el in event.iter("track")}

    names: dict[str, str] = {}
    talks: dict[str, list[Talk]] = {}

    for element in root.iter("track"):
        if id(element) in event_tracks:
            continue
        slug = element.get("slug")
        if not slug:
            continue
        names[slug] = _text(element) or ""
        talks.setdefault(slug, [])

    dropped = 0
    for event in events:
        slug = _child_text(event, "slug")
        title = _child_text(event, "title")
        track_el = event.find(".//track")
        track_slug = (track_el.get("slug") or "").strip() if track_el is not None else ""

        if not (slug and title and track_slug):
            dropped += 1
            continue

        if track_slug not in names:
            names[track_slug] = _text(track_el) or track_slug
            talks[track_slug] = []

        talks[track_slug].append(
            Talk(slug=slug, title=title, **{field: _child_text(event, field) for field in TALK_FIELDS})
        )

    schedule = {
        slug: Track(
            slug=slug,
            name=names[slug],
            talks=tuple(sorted(talks[slug], key=lambda talk: talk.sort_key)),
        )
        for slug in names
    }
    logger.debug(
        "Parsed schedule: %d tracks, %d talks, %d events dropped",
        len(schedule),
        sum(len(track.talks) for track in schedule.values()),
        dropped,
    )
    return schedule
