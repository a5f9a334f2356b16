"""Category filters, sorting and tag listing for the contact directory."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal

from salesdesk.crm.schemas import Contact

ContactCategory = Literal["all", "enterprise", "startup", "agency"]
ContactSort = Literal["name", "company", "created", "updated"]


def in_category(contact: Contact, category: ContactCategory) -> bool:
    if category == "all":
        return True
    return any(category in tag.lower() for tag in contact.tags)


def filter_by_category(contacts: Iterable[Contact], category: ContactCategory = "all") -> list[Contact]:
    return [contact for contact in contacts if in_category(contact, category)]


def sort_contacts(contacts: Iterable[Contact], sort_by: ContactSort = "name") -> list[Contact]:
    # Date sorts put the newest first.
    items = list(contacts)
    if sort_by == "company":
        return sorted(items, key=lambda contact: contact.company.casefold())
    if sort_by == "created":
        return sorted(items, key=lambda contact: contact.created_at, reverse=True)
    if sort_by == "updated":
        return sorted(items, key=lambda contact: contact.updated_at, reverse=True)
    return sorted(items, key=lambda contact: contact.name.casefold())


def distinct_tags(contacts: Iterable[Contact]) -> list[str]:
    return sorted({tag for contact in contacts for tag in contact.tags})


def query_contacts(
    contacts: Iterable[Contact],
    *,
    category: ContactCategory = "all",
    sort_by: ContactSort | None = None,
) -> list[Contact]:
    """Apply the category filter, then the sort; ``sort_by=None`` keeps the input order."""
    selected = filter_by_category(contacts, category)
    if sort_by is None:
        return selected
    return sort_contacts(selected, sort_by)
