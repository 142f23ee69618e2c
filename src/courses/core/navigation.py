"""Site navigation passed to the page layout."""

from collections.abc import Callable

from attrs import frozen

from courses.core.content_tree import ContentNode, ContentTree
from courses.infrastructure.utils.path_utils import url_for


@frozen
class NavigationEntry:
    title: str
    url: str
    kind: str
    active: bool = False
    children: tuple["NavigationEntry", ...] = ()


@frozen
class PageLinks:
    navigation: tuple[NavigationEntry, ...]
    breadcrumbs: tuple[NavigationEntry, ...]
    previous_page: NavigationEntry | None
    next_page: NavigationEntry | None


def _entry(
    node: ContentNode, url_prefix: str, current: ContentNode, children=()
) -> NavigationEntry:
    return NavigationEntry(
        title=node.title,
        url=url_for(url_prefix, node.relative_path),
        kind=node.kind.value,
        active=node.id == current.id,
        children=tuple(children),
    )


def build_page_links(
    tree: ContentTree,
    current: ContentNode,
    url_prefix: str,
    has_page: Callable[[ContentNode], bool],
) -> PageLinks:
    """Navigation links for the page of `current`.

    Only nodes for which `has_page` is true are linked. The navigation tree
    starts below the project node, which is reachable via the breadcrumbs.
    """

    def subtree(node: ContentNode) -> list[NavigationEntry]:
        entries = []
        for child in tree.children(node):
            if has_page(child):
                entries.append(_entry(child, url_prefix, current, subtree(child)))
        return entries

    pages = [node for node in tree.documents() if has_page(node)]
    position = next((i for i, node in enumerate(pages) if node.id == current.id), None)
    previous_page = next_page = None
    if position is not None:
        if position > 0:
            previous_page = _entry(pages[position - 1], url_prefix, current)
        if position + 1 < len(pages):
            next_page = _entry(pages[position + 1], url_prefix, current)

    breadcrumbs = tuple(
        _entry(node, url_prefix, current)
        for node in [*tree.ancestors(current), current]
        if has_page(node)
    )
    return PageLinks(
        navigation=tuple(subtree(tree.root)),
        breadcrumbs=breadcrumbs,
        previous_page=previous_page,
        next_page=next_page,
    )
