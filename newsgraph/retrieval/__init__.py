"""Related-document discovery, ranking and result shaping."""

from typing import Any

__all__ = ["related_articles", "ranked_articles"]


def related_articles(*args: Any, **kwargs: Any) -> list[dict]:
    from .pipeline import get_crlr_related_articles as _related_articles

    return _related_articles(*args, **kwargs)


def ranked_articles(*args: Any, **kwargs: Any) -> list[dict]:
    from .pipeline import get_path_related_articles as _ranked_articles

    return _ranked_articles(*args, **kwargs)
