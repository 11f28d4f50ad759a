import random

from utils.likes import toggle_membership


def test_like_adds_user_and_counts():
    likes, count, liked = toggle_membership([], "u1")
    assert likes == ["u1"]
    assert count == 1
    assert liked is True


def test_unlike_removes_user():
    likes, count, liked = toggle_membership(["u1", "u2"], "u1")
    assert likes == ["u2"]
    assert count == 1
    assert liked is False


def test_missing_likes_field_is_treated_as_empty():
    likes, count, liked = toggle_membership(None, "u1")
    assert (likes, count, liked) == (["u1"], 1, True)


def test_duplicate_entries_collapse():
    likes, count, liked = toggle_membership(["u1", "u1", "u2"], "u2")
    assert likes == ["u1"]
    assert count == 1
    assert liked is False


def test_double_toggle_restores_original_state():
    original = ["a", "b"]
    likes, count, _ = toggle_membership(original, "c")
    likes, count, liked = toggle_membership(likes, "c")
    assert likes == original
    assert count == len(original)
    assert liked is False


def test_count_tracks_set_size_over_random_sequence():
    rng = random.Random(7)
    users = [f"user{i}" for i in range(6)]
    likes = []
    for _ in range(200):
        likes, count, _ = toggle_membership(likes, rng.choice(users))
        assert count == len(likes) == len(set(likes))
        assert count >= 0
