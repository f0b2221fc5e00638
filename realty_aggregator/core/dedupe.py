from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from realty_aggregator.core.models import DuplicateGroup, Listing
from realty_aggregator.core.normalize import normalize_location, round_half_away
from realty_aggregator.core.progress import ProgressReporter, safe_report


PRICE_BUCKET = 10000
GROUP_TAGS = (
    "bg-yellow-100",
    "bg-blue-100",
    "bg-green-100",
    "bg-purple-100",
    "bg-pink-100",
    "bg-orange-100",
    "bg-teal-100",
    "bg-red-100",
)

GroupKey = tuple[int | None, int | None, str]


def build_group_key(listing: Listing) -> GroupKey:
    """
    Approximate identity: (price bucketed to 10k, rounded size, normalized location).
    Missing price or size leaves that component as None.
    """
    price_bucket = (
        round_half_away(listing.price / PRICE_BUCKET) * PRICE_BUCKET if listing.price is not None else None
    )
    rounded_size = round_half_away(listing.size) if listing.size is not None else None
    return (price_bucket, rounded_size, normalize_location(listing.location))


def group_listings(listings: Sequence[Listing]) -> list[DuplicateGroup]:
    groups: dict[GroupKey, DuplicateGroup] = {}
    for listing in listings:
        key = build_group_key(listing)
        group = groups.get(key)
        if group is None:
            group = groups[key] = DuplicateGroup(key=key)
        group.members.append(listing)

    tag_index = 0
    for group in groups.values():
        if group.is_duplicate:
            group.tag = GROUP_TAGS[tag_index % len(GROUP_TAGS)]
            tag_index += 1

    ordered = list(groups.values())
    # Stable partition, not a sort: encounter order is kept on both sides.
    return [g for g in ordered if g.tag is not None] + [g for g in ordered if g.tag is None]


def process_listings(listings: Sequence[Listing], reporter: ProgressReporter | None = None) -> list[Listing]:
    if not listings:
        return []

    groups = group_listings(listings)
    processed: list[Listing] = []
    for group in groups:
        count = len(group.members) if group.is_duplicate else None
        for listing in group.members:
            processed.append(replace(listing, group_tag=group.tag, duplicate_count=count))

    safe_report(reporter, summarize_groups(groups))
    return processed


def summarize_groups(groups: Sequence[DuplicateGroup]) -> str:
    duplicate_groups = [g for g in groups if g.is_duplicate]
    duplicate_listings = sum(len(g.members) for g in duplicate_groups)
    unique_listings = sum(1 for g in groups if not g.is_duplicate)
    incomplete = sum(1 for g in groups for listing in g.members if not listing.has_complete_key)

    lines = [
        "Duplicate analysis:",
        f"Total unique listings: {unique_listings}",
        f"Total duplicate listings: {duplicate_listings}",
        f"Number of duplicate groups: {len(duplicate_groups)}",
        f"Listings missing price or size: {incomplete}",
    ]
    for group in duplicate_groups:
        sources = ", ".join(listing.source.value for listing in group.members)
        lines.append(f"Group of {len(group.members)} listings: {sources}")
    return "\n".join(lines)
