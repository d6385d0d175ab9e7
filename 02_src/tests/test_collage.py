"""Tests for collage grouping."""

from datetime import datetime, timedelta, timezone

from chat_core.models import Attachment, ContainerKind, Message
from chat_core.stream import group, image_runs, render_plan

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def build(*codes: str) -> list[Message]:
    """Messages from short codes: 'i' image, 't' text, 'f' pdf, 'x' deleted image."""
    messages = []
    for i, code in enumerate(codes):
        attachment = None
        if code in ("i", "x"):
            attachment = Attachment(url=f"m{i}.png", file_type="image/png")
        elif code == "f":
            attachment = Attachment(url=f"m{i}.pdf", file_type="application/pdf")
        messages.append(
            Message(
                id=f"m{i}",
                container_id="g1",
                container_kind=ContainerKind.GROUP,
                sender_id="alice" if i % 2 else "bob",
                content="[Image]" if attachment else "text",
                created_at=START + timedelta(seconds=i),
                is_deleted=code == "x",
                attachment=attachment,
            )
        )
    return messages


class TestImageRuns:
    def test_runs_split_by_other_messages(self):
        runs = image_runs(build("i", "i", "t", "i", "f", "i", "i", "i"))
        assert [[m.id for m in run] for run in runs] == [
            ["m0", "m1"],
            ["m3"],
            ["m5", "m6", "m7"],
        ]

    def test_deleted_image_breaks_run(self):
        runs = image_runs(build("i", "i", "x", "i", "i"))
        assert [len(run) for run in runs] == [2, 2]


class TestGroup:
    """Tests for the default exactly-four rule."""

    def test_four_images_make_one_collage(self):
        messages = build("t", "i", "i", "i", "i", "t")

        groups = group(messages)

        assert len(groups) == 1
        assert groups[0].message_ids == ("m1", "m2", "m3", "m4")
        assert groups[0].leader_id == "m1"
        assert groups[0].image_urls == ["m1.png", "m2.png", "m3.png", "m4.png"]

    def test_three_images_stay_individual(self):
        assert group(build("i", "i", "i")) == []

    def test_five_images_stay_individual(self):
        assert group(build("i", "i", "i", "i", "i")) == []

    def test_senders_may_differ(self):
        messages = build("i", "i", "i", "i")
        assert len({m.sender_id for m in messages}) == 2
        assert len(group(messages)) == 1

    def test_two_separate_runs_of_four(self):
        groups = group(build("i", "i", "i", "i", "t", "i", "i", "i", "i"))
        assert [g.leader_id for g in groups] == ["m0", "m5"]


class TestGroupCarryRemainder:
    """Tests for grouping every full block of four."""

    def test_five_images(self):
        groups = group(build("i", "i", "i", "i", "i"), carry_remainder=True)
        assert [g.message_ids for g in groups] == [("m0", "m1", "m2", "m3")]

    def test_nine_images(self):
        groups = group(build(*"iiiiiiiii"), carry_remainder=True)
        assert [g.leader_id for g in groups] == ["m0", "m4"]

    def test_three_images(self):
        assert group(build("i", "i", "i"), carry_remainder=True) == []


class TestRenderPlan:
    """Tests for list slots."""

    def test_collage_sits_at_first_member(self):
        messages = build("t", "i", "i", "i", "i", "t")

        items = render_plan(messages, group(messages))

        assert [item.message.id for item in items] == ["m0", "m1", "m5"]
        assert items[1].collage is not None
        assert items[0].collage is None
        assert items[2].collage is None

    def test_without_groups_every_message_is_a_slot(self):
        messages = build("i", "i", "i")
        items = render_plan(messages, [])
        assert [item.message.id for item in items] == ["m0", "m1", "m2"]
