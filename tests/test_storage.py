"""Entity store contract, run against both MemoryStorage and SqlStorage."""

import pytest

from msgboard.core.errors import NotFoundError, ValidationError
from msgboard.services.ranking import SortMode
from msgboard.storage import LikeTarget


@pytest.mark.parametrize("length", [1, 2, 250, 499, 500])
async def test_create_message_valid_lengths(storage, length):
    message = await storage.create_message("x" * length, "10.0.0.1")

    assert message.id >= 1
    assert len(message.content) == length
    assert message.like_count == 0
    assert message.demoted is False
    assert await storage.get_message(message.id) == message


@pytest.mark.parametrize("content", ["", "   ", "\n\t", "x" * 501, " " + "y" * 501])
async def test_create_message_rejects_bad_length(storage, content):
    with pytest.raises(ValidationError):
        await storage.create_message(content, "10.0.0.1")

    assert await storage.count_totals() == (0, 0)


async def test_content_is_trimmed_before_length_check(storage):
    padded = "   " + "z" * 500 + "   "
    message = await storage.create_message(padded, "10.0.0.1")
    assert message.content == "z" * 500


async def test_message_ids_are_monotonic(storage):
    ids = [(await storage.create_message(f"m{i}", "o")).id for i in range(5)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 5


async def test_create_comment(storage):
    message = await storage.create_message("parent", "o")
    comment = await storage.create_comment(message.id, "  child  ")

    assert comment.message_id == message.id
    assert comment.content == "child"
    assert comment.like_count == 0
    assert comment.is_automated is False
    assert comment.author_label is None


async def test_create_comment_requires_existing_parent(storage):
    with pytest.raises(NotFoundError):
        await storage.create_comment(999, "orphan")
    assert await storage.count_totals() == (0, 0)


@pytest.mark.parametrize("content", ["", "x" * 501])
async def test_create_comment_rejects_bad_length(storage, content):
    message = await storage.create_message("parent", "o")
    with pytest.raises(ValidationError):
        await storage.create_comment(message.id, content)
    assert await storage.list_comments(message.id) == []


async def test_automated_comment_fields_round_trip(storage):
    message = await storage.create_message("parent", "o")
    comment = await storage.create_comment(
        message.id, "beep", is_automated=True, author_label="helper-bot"
    )
    stored = await storage.get_comment(comment.id)
    assert stored.is_automated is True
    assert stored.author_label == "helper-bot"


async def test_list_comments_oldest_first(storage):
    message = await storage.create_message("parent", "o")
    first = await storage.create_comment(message.id, "first")
    second = await storage.create_comment(message.id, "second")

    comments = await storage.list_comments(message.id)
    assert [c.id for c in comments] == [first.id, second.id]


async def test_list_comments_for_groups_by_message(storage):
    a = await storage.create_message("a", "o")
    b = await storage.create_message("b", "o")
    c = await storage.create_message("c", "o")
    await storage.create_comment(a.id, "a1")
    await storage.create_comment(b.id, "b1")
    await storage.create_comment(a.id, "a2")

    grouped = await storage.list_comments_for([a.id, b.id, c.id])
    assert [x.content for x in grouped[a.id]] == ["a1", "a2"]
    assert [x.content for x in grouped[b.id]] == ["b1"]
    assert c.id not in grouped
    assert await storage.list_comments_for([]) == {}


async def test_increment_likes(storage):
    message = await storage.create_message("m", "o")
    comment = await storage.create_comment(message.id, "c")

    assert (await storage.increment_message_likes(message.id)).like_count == 1
    assert (await storage.increment_message_likes(message.id)).like_count == 2
    assert (await storage.increment_comment_likes(comment.id)).like_count == 1
    assert (await storage.get_message(message.id)).like_count == 2


async def test_increment_missing_raises(storage):
    with pytest.raises(NotFoundError):
        await storage.increment_message_likes(42)
    with pytest.raises(NotFoundError):
        await storage.increment_comment_likes(42)


async def test_delete_message_cascades(storage):
    message = await storage.create_message("doomed", "o")
    keeper = await storage.create_message("keeper", "o")
    comment = await storage.create_comment(message.id, "c")
    kept_comment = await storage.create_comment(keeper.id, "k")
    await storage.add_like(LikeTarget.message, message.id, "o", "s1")
    await storage.add_like(LikeTarget.comment, comment.id, "o", "s1")

    assert await storage.delete_message(message.id) is True

    assert await storage.get_message(message.id) is None
    assert await storage.get_comment(comment.id) is None
    assert await storage.list_comments(message.id) == []
    assert not await storage.has_like(LikeTarget.message, message.id, "s1")
    assert not await storage.has_like(LikeTarget.comment, comment.id, "s1")
    assert await storage.get_comment(kept_comment.id) is not None
    assert await storage.count_totals() == (1, 1)
    for mode in SortMode:
        page = await storage.get_page(mode, 10, 0)
        assert [m.id for m in page] == [keeper.id]


async def test_delete_message_is_idempotent(storage):
    message = await storage.create_message("m", "o")
    assert await storage.delete_message(message.id) is True
    assert await storage.delete_message(message.id) is False
    assert await storage.delete_message(12345) is False


async def test_delete_comment_keeps_parent(storage):
    message = await storage.create_message("m", "o")
    comment = await storage.create_comment(message.id, "c")
    await storage.add_like(LikeTarget.comment, comment.id, "o", "s1")

    removed = await storage.delete_comment(comment.id)
    assert removed.id == comment.id
    assert removed.message_id == message.id
    assert await storage.delete_comment(comment.id) is None

    assert await storage.get_message(message.id) is not None
    assert await storage.get_comment(comment.id) is None
    assert not await storage.has_like(LikeTarget.comment, comment.id, "s1")


async def test_demote_is_idempotent(storage):
    message = await storage.create_message("m", "o")
    first = await storage.demote_message(message.id)
    second = await storage.demote_message(message.id)

    assert first.demoted is True
    assert second == first
    assert (await storage.get_message(message.id)).demoted is True


async def test_demote_missing_raises(storage):
    with pytest.raises(NotFoundError):
        await storage.demote_message(7)


async def test_count_totals(storage):
    a = await storage.create_message("a", "o")
    await storage.create_message("b", "o")
    await storage.create_comment(a.id, "c1")
    await storage.create_comment(a.id, "c2")
    await storage.create_comment(a.id, "c3")

    assert await storage.count_totals() == (2, 3)


async def test_negative_window_rejected(storage):
    with pytest.raises(ValidationError):
        await storage.get_page(SortMode.newest, -1, 0)
    with pytest.raises(ValidationError):
        await storage.get_page(SortMode.newest, 10, -5)


async def test_rate_limit_records(storage, clock):
    assert await storage.get_last_post_at("1.2.3.4") is None

    first = clock()
    await storage.set_last_post_at("1.2.3.4", first)
    assert await storage.get_last_post_at("1.2.3.4") == first

    second = clock()
    await storage.set_last_post_at("1.2.3.4", second)
    assert await storage.get_last_post_at("1.2.3.4") == second
    assert await storage.get_last_post_at("5.6.7.8") is None
