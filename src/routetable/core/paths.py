"""Request path normalization."""


def normalize_path(path: str = "") -> str:
    """Normalize a path into its canonical form.

    Empty and ``.`` segments are dropped, ``..`` removes the previously
    accepted segment (a no-op at the start), and the result carries neither a
    leading nor a trailing slash.

    Examples::

        ""                                  -> ""
        "/"                                 -> ""
        "/etc/hosts"                        -> "etc/hosts"
        ".././/tmp/../home//admin/./.ssh"   -> "home/admin/.ssh"

    Args:
        path: Raw path, possibly un-normalized

    Returns:
        Normalized path
    """
    segments: list[str] = []
    for segment in path.split("/"):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if segments:
                segments.pop()
        else:
            segments.append(segment)

    return "/".join(segments)


def split_path(normalized_path: str) -> list[str]:
    """Split a normalized path into its segments (none for the root)."""
    return normalized_path.split("/") if normalized_path else []
