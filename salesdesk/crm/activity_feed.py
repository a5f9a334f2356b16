"""Filtering, ordering and day-grouping of the activity timeline.

All calendar arithmetic is done on UTC dates. Links to contacts and deals are
resolved by id; a reference to a deleted record resolves to ``None`` rather
than failing, since deletes never cascade.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from typing import Literal

from salesdesk.crm.schemas import (
    Activity,
    ActivityFeedEntry,
    ActivityFeedGroup,
    ActivityFeedRead,
    ActivityStats,
    Contact,
    Deal,
)

ActivitySort = Literal["recent", "oldest", "type"]


def _utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


def filter_activities(
    activities: Iterable[Activity],
    *,
    activity_type: str | None = None,
    on_date: date | None = None,
) -> list[Activity]:
    selected = list(activities)
    if activity_type:
        selected = [activity for activity in selected if activity.type == activity_type]
    if on_date is not None:
        selected = [activity for activity in selected if _utc_date(activity.timestamp) == on_date]
    return selected


def sort_activities(activities: Iterable[Activity], sort_by: ActivitySort = "recent") -> list[Activity]:
    items = list(activities)
    if sort_by == "oldest":
        return sorted(items, key=lambda activity: (activity.timestamp, activity.id))
    if sort_by == "type":
        return sorted(items, key=lambda activity: activity.type)
    return sorted(items, key=lambda activity: (activity.timestamp, activity.id), reverse=True)


def day_label(timestamp: datetime, today: date) -> str:
    day = _utc_date(timestamp)
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day:%B} {day.day}, {day.year}"


def link_activities(
    activities: Iterable[Activity],
    contacts: Iterable[Contact],
    deals: Iterable[Deal],
) -> list[ActivityFeedEntry]:
    contacts_by_id = {contact.id: contact for contact in contacts}
    deals_by_id = {deal.id: deal for deal in deals}
    return [
        ActivityFeedEntry(
            activity=activity,
            contact=contacts_by_id.get(activity.contact_id) if activity.contact_id is not None else None,
            deal=deals_by_id.get(activity.deal_id) if activity.deal_id is not None else None,
        )
        for activity in activities
    ]


def group_by_day(entries: Iterable[ActivityFeedEntry], today: date) -> list[ActivityFeedGroup]:
    groups: dict[str, ActivityFeedGroup] = {}
    for entry in entries:
        label = day_label(entry.activity.timestamp, today)
        groups.setdefault(label, ActivityFeedGroup(label=label)).entries.append(entry)
    return list(groups.values())


def activity_stats(activities: Iterable[Activity], now: datetime) -> ActivityStats:
    today = _utc_date(now)
    week_ago = now - timedelta(days=7)
    stats = ActivityStats()
    for activity in activities:
        stats.by_type[activity.type] = stats.by_type.get(activity.type, 0) + 1
        day = _utc_date(activity.timestamp)
        if day == today:
            stats.today += 1
        elif day == today - timedelta(days=1):
            stats.yesterday += 1
        if activity.timestamp > week_ago:
            stats.last_7_days += 1
    return stats


def build_feed(
    activities: Iterable[Activity],
    contacts: Iterable[Contact],
    deals: Iterable[Deal],
    *,
    now: datetime,
    activity_type: str | None = None,
    on_date: date | None = None,
    sort_by: ActivitySort = "recent",
) -> ActivityFeedRead:
    """Assemble the grouped activity timeline.

    Stats always cover the full activity list; only the groups honour the
    type and date filters.
    """
    all_activities = list(activities)
    selected = sort_activities(
        filter_activities(all_activities, activity_type=activity_type, on_date=on_date),
        sort_by,
    )
    entries = link_activities(selected, contacts, deals)
    return ActivityFeedRead(
        groups=group_by_day(entries, _utc_date(now)),
        stats=activity_stats(all_activities, now),
        total=len(selected),
    )
