"""Feed ordering for all four sort modes, on both backends."""

from datetime import datetime, timedelta, timezone

from msgboard.services.ranking import (
    CommentStats,
    RankingEngine,
    SortMode,
    latest_activity,
    sort_key,
)
from msgboard.storage import MessageRecord

T0 = datetime(2024, 5, 1, tzinfo=timezone.utc)


def ids(page):
    return [m.id for m in page]


# ── Pure keys ────────────────────────────────────────────────────────────────

def test_latest_activity_uses_newest_comment():
    message = MessageRecord(id=1, content="m", created_at=T0)
    stats = CommentStats(count=2, last_comment_at=T0 + timedelta(hours=1))
    assert latest_activity(message, stats) == T0 + timedelta(hours=1)


def test_latest_activity_without_comments_is_post_time():
    message = MessageRecord(id=1, content="m", created_at=T0)
    assert latest_activity(message, CommentStats()) == T0


def test_latest_activity_frozen_when_demoted():
    message = MessageRecord(id=1, content="m", created_at=T0, demoted=True)
    stats = CommentStats(count=5, last_comment_at=T0 + timedelta(days=3))
    assert latest_activity(message, stats) == T0


def test_sort_keys_break_ties_by_id():
    a = MessageRecord(id=1, content="a", created_at=T0, like_count=3)
    b = MessageRecord(id=2, content="b", created_at=T0, like_count=3)
    for mode in SortMode:
        assert sort_key(mode, a, CommentStats()) < sort_key(mode, b, CommentStats())


# ── Backend orders ───────────────────────────────────────────────────────────

async def test_newest_first(storage):
    a = await storage.create_message("a", "o")
    b = await storage.create_message("b", "o")
    c = await storage.create_message("c", "o")

    assert ids(await storage.get_page(SortMode.newest, 10, 0)) == [c.id, b.id, a.id]


async def test_most_liked_non_increasing_with_id_tiebreak(storage):
    messages = [await storage.create_message(f"m{i}", "o") for i in range(5)]
    for message, likes in zip(messages, [2, 5, 2, 0, 5]):
        for _ in range(likes):
            await storage.increment_message_likes(message.id)

    page = await storage.get_page(SortMode.most_liked, 10, 0)
    counts = [m.like_count for m in page]

    assert counts == sorted(counts, reverse=True)
    assert ids(page) == [messages[1].id, messages[4].id, messages[0].id,
                         messages[2].id, messages[3].id]
    assert ids(await storage.get_page(SortMode.most_liked, 10, 0)) == ids(page)


async def test_most_commented(storage):
    quiet = await storage.create_message("quiet", "o")
    busy = await storage.create_message("busy", "o")
    medium = await storage.create_message("medium", "o")
    for _ in range(3):
        await storage.create_comment(busy.id, "c")
    await storage.create_comment(medium.id, "c")

    page = await storage.get_page(SortMode.most_commented, 10, 0)
    assert ids(page) == [busy.id, medium.id, quiet.id]


async def test_most_commented_ties_by_id(storage):
    a = await storage.create_message("a", "o")
    b = await storage.create_message("b", "o")
    await storage.create_comment(b.id, "c")
    await storage.create_comment(a.id, "c")

    assert ids(await storage.get_page(SortMode.most_commented, 10, 0)) == [a.id, b.id]


async def test_hottest_scenario_with_demotion(storage):
    a = await storage.create_message("A", "o")          # t0
    b = await storage.create_message("B", "o")          # t1
    assert ids(await storage.get_page(SortMode.newest, 10, 0)) == [b.id, a.id]

    await storage.create_comment(a.id, "bump")          # t2
    assert ids(await storage.get_page(SortMode.hottest, 10, 0)) == [a.id, b.id]

    await storage.demote_message(a.id)
    await storage.create_comment(a.id, "bump again")    # t3
    assert ids(await storage.get_page(SortMode.hottest, 10, 0)) == [b.id, a.id]


async def test_demotion_stops_comment_bumps(storage):
    old_quiet = await storage.create_message("old, no comments", "o")
    target = await storage.create_message("target", "o")
    await storage.demote_message(target.id)
    before = ids(await storage.get_page(SortMode.hottest, 10, 0))

    await storage.create_comment(target.id, "please bump")
    after = ids(await storage.get_page(SortMode.hottest, 10, 0))

    assert before == after == [target.id, old_quiet.id]


async def test_demotion_only_affects_hottest(storage):
    a = await storage.create_message("a", "o")
    b = await storage.create_message("b", "o")
    await storage.increment_message_likes(a.id)
    await storage.create_comment(a.id, "c")
    await storage.demote_message(a.id)

    assert ids(await storage.get_page(SortMode.newest, 10, 0)) == [b.id, a.id]
    assert ids(await storage.get_page(SortMode.most_liked, 10, 0)) == [a.id, b.id]
    assert ids(await storage.get_page(SortMode.most_commented, 10, 0)) == [a.id, b.id]


async def test_pagination_windows(storage):
    messages = [await storage.create_message(f"m{i}", "o") for i in range(7)]
    newest_first = [m.id for m in reversed(messages)]

    assert ids(await storage.get_page(SortMode.newest, 3, 0)) == newest_first[0:3]
    assert ids(await storage.get_page(SortMode.newest, 3, 3)) == newest_first[3:6]
    assert ids(await storage.get_page(SortMode.newest, 3, 6)) == newest_first[6:]
    assert await storage.get_page(SortMode.newest, 3, 9) == []
    assert await storage.get_page(SortMode.newest, 0, 0) == []


async def test_engine_annotates_comments(storage):
    a = await storage.create_message("a", "o")
    b = await storage.create_message("b", "o")
    await storage.create_comment(a.id, "first")
    await storage.create_comment(a.id, "second")

    page = await RankingEngine(storage).page(SortMode.hottest, 10, 0)

    assert [m.id for m in page] == [a.id, b.id]
    assert page[0].comment_count == 2
    assert [c.content for c in page[0].comments] == ["first", "second"]
    assert page[1].comment_count == 0
    assert page[1].comments == []
