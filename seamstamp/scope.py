"""
Resolve stamp scopes to concrete page numbers.
"""

from typing import Iterable, Tuple

from .errors import UnsupportedScopeError
from .options import (
    PageStampOptions,
    PageStampScope,
    SeamScope,
    SeamStampOptions,
)

__all__ = ['resolve_seam_pages', 'resolve_page_stamp_pages']


def _custom_pages(pages: Iterable[int], page_count: int) -> Tuple[int, ...]:
    return tuple(sorted({p for p in pages if 1 <= p <= page_count}))


def resolve_seam_pages(
    options: SeamStampOptions, page_count: int
) -> Tuple[int, ...]:
    """
    Determine the pages that participate in seam stamping.

    :param options:
        The seam stamp options.
    :param page_count:
        Number of pages in the document.
    :return:
        Sorted (1-based) page numbers.
    :raises UnsupportedScopeError:
        if the scope is not a :class:`.SeamScope`.
    """
    scope = options.scope
    all_pages = range(1, page_count + 1)
    if scope == SeamScope.NONE:
        return ()
    elif scope == SeamScope.ALL:
        return tuple(all_pages)
    elif scope == SeamScope.ODD:
        return tuple(p for p in all_pages if p % 2 == 1)
    elif scope == SeamScope.EVEN:
        return tuple(p for p in all_pages if p % 2 == 0)
    elif scope == SeamScope.CUSTOM:
        return _custom_pages(options.custom_pages, page_count)
    raise UnsupportedScopeError(f"Unsupported seam scope: {scope!r}.")


def resolve_page_stamp_pages(
    options: PageStampOptions, page_count: int
) -> Tuple[int, ...]:
    """
    Determine the pages that receive a page stamp.

    :param options:
        The page stamp options.
    :param page_count:
        Number of pages in the document.
    :return:
        Sorted (1-based) page numbers.
    :raises UnsupportedScopeError:
        if the scope is not a :class:`.PageStampScope`.
    """
    scope = options.scope
    if scope == PageStampScope.NONE:
        return ()
    elif scope == PageStampScope.ALL:
        return tuple(range(1, page_count + 1))
    elif scope == PageStampScope.SKIP_FIRST:
        return tuple(range(2, page_count + 1)) if page_count > 1 else ()
    elif scope == PageStampScope.SKIP_LAST:
        return tuple(range(1, page_count)) if page_count > 1 else ()
    elif scope == PageStampScope.CUSTOM:
        return _custom_pages(options.custom_pages, page_count)
    raise UnsupportedScopeError(f"Unsupported page stamp scope: {scope!r}.")
