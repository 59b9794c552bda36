TAG_RULES = [
    (lambda p: p.startswith("/api/v1/auth/"), "Authentication"),
    (lambda p: p.startswith("/api/v1/users/"), "Users"),
    (lambda p: p.startswith("/api/v1/chats/") and "/messages" in p, "Messages"),
    (lambda p: p.startswith("/api/v1/chats/") and "/members" in p, "Chat Members"),
    (lambda p: p.startswith("/api/v1/chats/"), "Chats"),
    (lambda p: p == "/api/v1/schema/", "Meta"),
]


def group_tags(result, generator, request, public):
    """Give every chat API operation a single tag derived from its path."""
    for path, operations in result.get("paths", {}).items():
        tag = next((name for matches, name in TAG_RULES if matches(path)), None)
        if tag is None:
            continue
        for operation in operations.values():
            operation["tags"] = [tag]
    return result
