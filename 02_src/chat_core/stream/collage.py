"""Grouping of consecutive image messages into 2x2 collages."""

from typing import Iterable

from ..models import CollageGroup, Message, RenderItem

COLLAGE_SIZE = 4


def image_runs(messages: Iterable[Message]) -> list[list[Message]]:
    """Maximal runs of consecutive image messages, in list order.

    Any non-image message ends a run, including deleted images.
    """
    runs: list[list[Message]] = []
    current: list[Message] = []
    for message in messages:
        if message.is_image:
            current.append(message)
            continue
        if current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def group(
    messages: Iterable[Message], carry_remainder: bool = False
) -> list[CollageGroup]:
    """Collage groups for a message list.

    By default only a run of exactly four images becomes a collage; runs of
    any other length render as individual images. With `carry_remainder`
    every full block of four inside a longer run is grouped and the leftover
    images render individually.
    """
    groups = []
    for run in image_runs(messages):
        if carry_remainder:
            for start in range(0, len(run) - COLLAGE_SIZE + 1, COLLAGE_SIZE):
                groups.append(CollageGroup(tuple(run[start:start + COLLAGE_SIZE])))
        elif len(run) == COLLAGE_SIZE:
            groups.append(CollageGroup(tuple(run)))
    return groups


def render_plan(
    messages: Iterable[Message], groups: Iterable[CollageGroup]
) -> list[RenderItem]:
    """List slots in message order; a collage sits at its first member."""
    leaders = {g.leader_id: g for g in groups}
    followers = {
        message_id
        for g in leaders.values()
        for message_id in g.message_ids[1:]
    }

    items = []
    for message in messages:
        if message.id in followers:
            continue
        items.append(RenderItem(message=message, collage=leaders.get(message.id)))
    return items
