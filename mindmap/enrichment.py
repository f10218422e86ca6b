"""
Enrichment merge - Fold search/maps grounding results into the live graph.

The grounding call itself is external; this module only defines how its
result lands on a node. The result is merged into whatever the node looks
like when the result arrives, looked up by id. If the node was deleted in
the meantime the merge does nothing.
"""

import logging
from typing import Awaitable, Callable, Union

from .editor import GraphState, MindMapEditor
from .models import EnrichmentResult, GraphNode

logger = logging.getLogger(__name__)


Fetcher = Callable[[str], Awaitable[Union[EnrichmentResult, dict]]]


class EnrichmentError(Exception):
    """The grounding call for a node failed."""

    def __init__(self, node_id: str, message: str):
        super().__init__(message)
        self.node_id = node_id


def _merged(node: GraphNode, result: EnrichmentResult, source: str) -> GraphNode:
    existing = f"{node.data.details}\n\n" if node.data.details else ""
    data = node.data.model_copy(update={
        "details": f"{existing}[{source}]: {result.text}",
        "links": [*node.data.links, *(link.model_copy() for link in result.links)],
    })
    return node.model_copy(update={"data": data})


def merge_enrichment(
    editor: MindMapEditor,
    node_id: str,
    result: EnrichmentResult,
    source: str = "Search"
) -> bool:
    """
    Append an enrichment result to a node's details and links.

    Returns:
        True if merged, False if the node no longer exists (or no map is
        loaded any more)
    """
    if not editor.is_loaded:
        return False

    def transform(state: GraphState):
        return state.replace_node(node_id, lambda n: _merged(n, result, source))

    merged = editor.update(transform) is not None
    if not merged:
        logger.debug("Enrichment for %r dropped: node no longer exists", node_id)
    return merged


async def enrich_node(
    editor: MindMapEditor,
    node_id: str,
    fetcher: Fetcher,
    source: str = "Search"
) -> bool:
    """
    Run `fetcher` for a node's label and merge its result.

    The label is read when the call starts; the merge targets the node as
    it is when the call returns.

    Raises:
        EnrichmentError: if the fetcher fails
    """
    node = editor.get_node(node_id)
    if node is None:
        return False

    try:
        raw = await fetcher(node.data.label)
    except Exception as e:
        logger.warning("%s enrichment failed for %r: %s", source, node_id, e)
        raise EnrichmentError(node_id, f"{source} enrichment failed: {e}") from e

    result = raw if isinstance(raw, EnrichmentResult) else EnrichmentResult.model_validate(raw)
    return merge_enrichment(editor, node_id, result, source)
