# tests/test_compaction.py
"""
Tests for summary extraction and summary chaining.
"""
from __future__ import annotations

from services.chat_message import ChatMessage
from services.compaction import (
    extract_user_preferences,
    find_important_moments,
    find_relationship_milestones,
    merge_summaries,
    summarize_messages,
    tone_percentages,
)


def _user(text: str, ts: str = "2024-01-01T00:00:00+00:00") -> ChatMessage:
    return ChatMessage(content=text, sender="user", timestamp=ts)


def _buddy(text: str) -> ChatMessage:
    return ChatMessage(content=text, sender="buddy", timestamp="2024-01-01T00:00:01+00:00")


def test_topics_count_user_messages_only():
    messages = [
        _user("my boss called a meeting"),
        _buddy("work sounds busy, want to grab food?"),
        _user("I cooked a meal tonight"),
        _user("another project at work"),
    ]
    summary = summarize_messages(messages)
    assert summary.topic_counts == {"work": 2, "food": 1}
    assert summary.key_topics[0] == {"topic": "work", "mentions": 2}
    assert summary.user_preferences["interests"] == ["work", "food"]


def test_important_moments_are_typed_and_truncated():
    long_text = "I got the promotion at my job and I am so excited " + "x" * 200
    moments = find_important_moments([_user(long_text), _user("feeling worried today")])
    types = [m["type"] for m in moments]
    assert types == ["positive_emotion", "achievement", "negative_emotion"]
    assert all(len(m["content"]) <= 100 for m in moments)


def test_important_moments_bounded():
    moments = find_important_moments([_user("amazing day") for _ in range(30)])
    assert len(moments) == 10


def test_user_preferences():
    prefs = extract_user_preferences([
        _user("I really love pizza with pineapple"),
        _user("I hate mornings"),
        _user("I don't like spiders at all"),
    ])
    assert prefs["favorite_things"] == ["pizza with"]
    assert prefs["dislikes"] == ["mornings", "spiders at"]


def test_user_preferences_reads_likes_and_dislikes_in_one_message():
    prefs = extract_user_preferences([_user("I love pizza but I hate mushrooms")])
    assert prefs["favorite_things"] == ["pizza but"]
    assert prefs["dislikes"] == ["mushrooms"]


def test_tone_percentages_without_messages():
    assert tone_percentages({"positive": 0, "negative": 0, "neutral": 0}) == {
        "positive": 0, "negative": 0, "neutral": 100,
    }


def test_tone_from_messages():
    summary = summarize_messages([
        _user("this is awesome"),
        _user("what a terrible day"),
        _user("ok"),
        _user("great great"),
    ])
    assert summary.tone_counts == {"positive": 2, "negative": 1, "neutral": 1}
    assert summary.emotional_tone == {"positive": 50, "negative": 25, "neutral": 25}


def test_milestones():
    messages = [
        _user("hello", ts="2024-01-01T00:00:00+00:00"),
        _user("you're a good friend", ts="2024-01-02T00:00:00+00:00"),
        _user("best friend ever", ts="2024-01-03T00:00:00+00:00"),
    ]
    milestones = find_relationship_milestones(messages)
    assert [m["type"] for m in milestones] == ["first_conversation", "friendship_mentioned"]
    assert milestones[1]["timestamp"] == "2024-01-02T00:00:00+00:00"


def test_summary_counts_every_message():
    messages = [_user("hi"), _buddy("hey"), _user("bye")]
    summary = summarize_messages(messages)
    assert summary.original_message_count == 3
    assert summary.last_pass_message_count == 3
    assert summary.compaction_count == 1
    assert summary.time_span["start"] == messages[0].timestamp
    assert summary.time_span["end"] == messages[-1].timestamp


def test_merge_chains_counts_and_topics():
    first = summarize_messages([_user("my job", ts="2024-01-01T00:00:00+00:00"), _user("a friend")])
    second = summarize_messages([_user("my boss and my job"), _user("cook dinner", ts="2024-02-01T00:00:00+00:00")])
    merged = merge_summaries(first, second)

    assert merged.original_message_count == 4
    assert merged.last_pass_message_count == 2
    assert merged.compaction_count == 2
    assert merged.topic_counts == {"work": 2, "food": 1}
    assert merged.time_span == {"start": "2024-01-01T00:00:00+00:00", "end": "2024-02-01T00:00:00+00:00"}
    assert [m["type"] for m in merged.relationship_milestones] == ["first_conversation", "friendship_mentioned"]


def test_merge_without_previous_returns_current():
    current = summarize_messages([_user("hi")])
    assert merge_summaries(None, current) is current
