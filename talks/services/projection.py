"""What the user currently sees, computed from the schedule and attendance mirrors.

Everything here is a pure function of its arguments. The attendance and user
mirrors may be mid-update when these run; nothing assumes they agree with
each other or with the schedule.
"""

from typing import Mapping

from talks.domain.models import Attendance, GroupUser, PlannedTalk, Schedule, Talk, Track
from talks.domain.value_objects import AttendanceKind, FilterType, TalkFilter, View

ANONYMOUS = "Anonymous"


def has_marker(attendance: Attendance, talk_slug: str, kind: AttendanceKind, uid: str | None) -> bool:
    if not uid:
        return False
    return uid in attendance.get(talk_slug, {}).get(kind, ())


def _keep(
    talk: Talk,
    attendance: Attendance,
    view: View,
    talk_filter: TalkFilter,
    search: str,
    uid: str | None,
) -> bool:
    if search:
        return search in talk.title.lower() or search in talk.slug.lower()
    if view is View.MYPLAN:
        return has_marker(attendance, talk.slug, AttendanceKind.GOING, uid)
    if view is View.FRIENDS and talk_filter.type is FilterType.USER:
        return has_marker(attendance, talk.slug, AttendanceKind.GOING, talk_filter.value)
    return True


def filtered_talks(
    schedule: Schedule | None,
    attendance: Attendance,
    view: View,
    talk_filter: TalkFilter,
    search_query: str,
    uid: str | None,
) -> dict[str, Track]:
    """Tracks with only the talks passing the current search, view and filter.

    A non-empty search overrides the view and the filter. Tracks left without
    talks are dropped.
    """
    if not schedule:
        return {}
    search = search_query.lower()
    result = {}
    for slug, track in schedule.items():
        talks = tuple(t for t in track.talks if _keep(t, attendance, view, talk_filter, search, uid))
        if talks:
            result[slug] = track.with_talks(talks)
    return result


def find_talk(schedule: Schedule | None, talk_slug: str) -> PlannedTalk | None:
    for track_slug, track in (schedule or {}).items():
        for talk in track.talks:
            if talk.slug == talk_slug:
                return PlannedTalk(talk=talk, track_slug=track_slug, track_name=track.name)
    return None


def talks_for_user(schedule: Schedule | None, attendance: Attendance, uid: str | None) -> list[PlannedTalk]:
    """Talks uid marked as going, ordered by (date, start)."""
    if not schedule or not uid:
        return []
    planned = []
    for talk_slug, markers in attendance.items():
        if uid not in markers.get(AttendanceKind.GOING, ()):
            continue
        found = find_talk(schedule, talk_slug)
        if found is not None:
            planned.append(found)
    return sorted(planned, key=lambda item: item.sort_key)


def here_status(attendance: Attendance) -> dict[str, str]:
    """uid -> talk slug for every user marked here. Last one seen wins."""
    status = {}
    for talk_slug, markers in attendance.items():
        for uid in sorted(markers.get(AttendanceKind.HERE, ())):
            status[uid] = talk_slug
    return status


def nickname_for(users: Mapping[str, GroupUser], uid: str) -> str:
    user = users.get(uid)
    return user.nickname if user and user.nickname else ANONYMOUS


def other_users(users: Mapping[str, GroupUser], uid: str | None) -> list[GroupUser]:
    return [user for user_uid, user in users.items() if user_uid != uid]
