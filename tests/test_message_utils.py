import random
from datetime import timedelta

from carebridge.utils.message_utils import (
    apply_realtime_event, confirm_sent, dedupe_and_sort, find_optimistic_match,
    is_temp_id, make_temp_id, mark_chat_read, merge_page, replace_message, soft_delete,
)

from conftest import BASE_TIME, make_message


def ids(messages):
    return [m.id for m in messages]


def test_temp_ids_are_unique_and_prefixed():
    first, second = make_temp_id(), make_temp_id()
    assert first != second
    assert is_temp_id(first)
    assert not is_temp_id("m1")


def test_dedupe_keeps_last_write_and_sorts():
    stale = make_message("m1", content="old", offset=10)
    fresh = make_message("m1", content="new", offset=10)
    earlier = make_message("m0", offset=0)

    result = dedupe_and_sort([stale, fresh, earlier])

    assert ids(result) == ["m0", "m1"]
    assert result[1].content == "new"


def test_correlation_id_picks_exact_temp_entry():
    # Two identical optimistic sends; the heuristic alone could confuse them
    first = make_message("temp-1", sender_id="u1", content="ok", client_message_id="temp-1")
    second = make_message("temp-2", sender_id="u1", content="ok", offset=1, client_message_id="temp-2")
    echo = make_message("m2", sender_id="u1", content="ok", offset=1, client_message_id="temp-2")

    assert find_optimistic_match([first, second], echo) == 1


def test_correlation_id_without_match_does_not_fall_back_to_heuristic():
    temp = make_message("temp-1", sender_id="u1", content="ok", client_message_id="temp-1")
    echo = make_message("m9", sender_id="u1", content="ok", client_message_id="temp-other")

    assert find_optimistic_match([temp], echo) is None


def test_heuristic_match_respects_window():
    temp = make_message("temp-1", sender_id="u1", content="ok")
    close = make_message("m1", sender_id="u1", content="ok", offset=3)
    far = make_message("m2", sender_id="u1", content="ok", offset=30)
    other_sender = make_message("m3", sender_id="u2", content="ok", offset=1)

    assert find_optimistic_match([temp], close, window_seconds=5) == 0
    assert find_optimistic_match([temp], far, window_seconds=5) is None
    assert find_optimistic_match([temp], other_sender, window_seconds=5) is None


def test_apply_event_updates_existing_in_place():
    messages = [make_message("m1", offset=0), make_message("m2", offset=5), make_message("m3", offset=10)]
    update = make_message("m1", offset=0, reactions={"like": ["u1"]})

    result = apply_realtime_event(messages, update)

    assert ids(result) == ["m1", "m2", "m3"]
    assert result[0].reactions == {"like": ["u1"]}


def test_apply_event_keeps_fields_the_update_does_not_carry():
    original = make_message("m1", reactions={"like": ["u2"]}, reply_to_id="m0")
    update = make_message("m1", content="edited", edited_at=BASE_TIME + timedelta(minutes=1))

    result = apply_realtime_event([original], update)

    assert result[0].content == "edited"
    assert result[0].reactions == {"like": ["u2"]}
    assert result[0].reply_to_id == "m0"
    assert result[0].edited_at is not None


def test_apply_event_moves_updated_at_forward():
    existing = make_message("m1")
    edit = make_message("m1", content="edited", edited_at=BASE_TIME + timedelta(minutes=2))

    result = apply_realtime_event([existing], edit)

    assert result[0].updated_at == BASE_TIME + timedelta(minutes=2)

    stale = make_message("m1", content="edited", created_at=BASE_TIME - timedelta(minutes=1))
    assert apply_realtime_event(result, stale)[0].updated_at == BASE_TIME + timedelta(minutes=2)


def test_apply_event_replaces_matching_temp_entry():
    temp = make_message("temp-1", sender_id="u1", content="hi", client_message_id="temp-1")
    echo = make_message("m1", sender_id="u1", content="hi", client_message_id="temp-1")

    assert ids(apply_realtime_event([temp], echo)) == ["m1"]


def test_apply_event_appends_new_and_sorts():
    messages = [make_message("m2", offset=10)]
    late_arrival = make_message("m1", offset=0)

    assert ids(apply_realtime_event(messages, late_arrival)) == ["m1", "m2"]


def test_confirm_sent_skips_duplicate_from_realtime():
    confirmed = make_message("m1", sender_id="u1", content="hi")
    # Realtime echo already replaced the temp entry
    result = confirm_sent([confirmed], "temp-1", confirmed)
    assert ids(result) == ["m1"]

    result = confirm_sent([make_message("temp-1", sender_id="u1", content="hi")], "temp-1", confirmed)
    assert ids(result) == ["m1"]


def test_merge_page_drops_temp_entries_confirmed_by_page():
    temp = make_message("temp-1", sender_id="u1", content="hi", offset=20, client_message_id="temp-1")
    live = make_message("m5", offset=15)
    page = [make_message("m1", offset=0), make_message("m2", sender_id="u1", content="hi", offset=20,
                                                       client_message_id="temp-1")]

    assert ids(merge_page([temp, live], page)) == ["m1", "m5", "m2"]


def test_soft_delete_keeps_position():
    messages = [make_message("m1", offset=0), make_message("m2", offset=1), make_message("m3", offset=2)]

    result = soft_delete(messages, "m2", placeholder="gone")

    assert ids(result) == ["m1", "m2", "m3"]
    assert result[1].content == "gone"
    assert result[1].deleted_at is not None
    assert messages[1].content == "hello"


def test_replace_message_ignores_unknown_ids():
    messages = [make_message("m1")]
    assert replace_message(messages, make_message("m9")) == messages


def test_mark_chat_read_only_touches_that_chat():
    messages = [make_message("m1", chat_id="c1"), make_message("m2", chat_id="c2")]

    result = mark_chat_read(messages, "c1")

    assert [m.is_read for m in result] == [True, False]


def test_interleaved_sources_never_duplicate_or_misorder():
    rng = random.Random(1234)
    messages = []
    durable = 0

    for step in range(300):
        action = rng.choice(["send", "push", "history", "echo"])
        offset = rng.uniform(0, 120)
        if action == "send":
            temp_id = f"temp-{step}"
            messages = dedupe_and_sort(messages + [
                make_message(temp_id, sender_id="u1", content=f"s{step}", offset=offset, client_message_id=temp_id)
            ])
        elif action == "echo":
            temps = [m for m in messages if is_temp_id(m.id)]
            if temps:
                temp = rng.choice(temps)
                durable += 1
                echo = make_message(f"m{durable}", sender_id="u1", content=temp.content,
                                    created_at=temp.created_at, client_message_id=temp.id)
                messages = apply_realtime_event(messages, echo)
        elif action == "push":
            target = rng.randint(1, max(durable, 1))
            messages = apply_realtime_event(messages, make_message(f"m{target}", offset=offset))
        else:
            page = [make_message(f"m{rng.randint(1, max(durable, 1))}", offset=rng.uniform(0, 120))
                    for _ in range(rng.randint(1, 5))]
            messages = merge_page(messages, page)

        assert len(ids(messages)) == len(set(ids(messages)))
        stamps = [m.created_at for m in messages]
        assert stamps == sorted(stamps)
