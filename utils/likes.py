def toggle_membership(likes: list[str], user_id: str) -> tuple[list[str], int, bool]:
    """
    Flip a user's membership in a post's likes set

    The count is derived from the resulting set rather than adjusted from the
    stored counter, so a drifted likeCount is repaired on the next toggle and
    can never go negative.

    :return: (new likes list, new like count, whether the user now likes the post)
    """
    # duplicates from legacy writes collapse here
    current = list(dict.fromkeys(likes or []))

    if user_id in current:
        current.remove(user_id)
        liked = False
    else:
        current.append(user_id)
        liked = True

    return current, len(current), liked
