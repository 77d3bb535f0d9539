"""Title helpers."""

import re

# "The ", "A " or "An " (capitalized or lower case) with more text after it
_LEADING_ARTICLE = re.compile(r"^(?:[Tt]he|[Aa]n|[Aa]) (?=.)")


def trim_leading_article(title: str | None) -> str | None:
    """Remove a leading "The ", "A " or "An " for sorting.

    "The Wire" -> "Wire", "A-Team" and "Breaking Bad" stay unchanged.
    Only the single space after the article is removed.
    """
    if not title:
        return title
    return _LEADING_ARTICLE.sub("", title, count=1)
