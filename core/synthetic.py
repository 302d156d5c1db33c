"""Deterministic synthetic tree generator.

Builds the fixed-shape nested message used by the latency benchmark.
Every non-leaf node has exactly :data:`FAN_OUT` children. Names encode
lineage and values encode an offset chain::

    root            value = seed
    root.1          value = seed + 1
    root.1.3        value = seed + 1 + 3
    ...

One recursive function parameterized by the remaining depth produces
every level, so the tree shape depends only on ``depth``.

Node count:
    A tree of depth ``d`` holds ``(8 ** (d + 1) - 1) / 7`` nodes.
    The default eight-level tree (``d = 7``) holds 2,396,745 nodes; in
    pure Python both building and parsing it take seconds, so tests
    and quick runs use smaller depths.

Example:
    >>> node = generate("root", 0, depth=1)
    >>> [child.name for child in node.children][:3]
    ['root.1', 'root.2', 'root.3']
    >>> node.children[7].value
    8
    >>> count_nodes(node) == expected_node_count(1)
    True
"""

from collections.abc import Iterator

from infra.messages import BenchmarkRequest, SyntheticNode

FAN_OUT: int = 8
"""Children per non-leaf node."""

SCHEMA_LEVELS: int = 8
"""Levels in the benchmark message, root included."""

MAX_DEPTH: int = 8
"""Largest accepted remaining depth."""

DEFAULT_DEPTH: int = SCHEMA_LEVELS - 1
"""Remaining depth below the root for the benchmark message."""


def generate(seed_name: str, seed_value: int, depth: int) -> SyntheticNode:
    """Build a synthetic tree rooted at ``seed_name`` / ``seed_value``.

    Pure and deterministic: identical arguments always produce
    structurally and value-identical trees.

    Args:
        seed_name: Name of the root node.
        seed_value: int64 value of the root node.
        depth: Remaining levels below the root. ``0`` builds a single
            leaf carrying only name and value.

    Returns:
        The root :class:`~infra.messages.SyntheticNode`.

    Raises:
        ValueError: If ``depth`` is outside ``[0, MAX_DEPTH]``. This is
            a caller programming error.
    """
    if not 0 <= depth <= MAX_DEPTH:
        raise ValueError(f"depth must be in [0, {MAX_DEPTH}], got {depth}")
    return _build(seed_name, seed_value, depth)


def _build(name: str, value: int, depth: int) -> SyntheticNode:
    if depth == 0:
        return SyntheticNode(name=name, value=value)
    return SyntheticNode(
        name=name,
        value=value,
        children=[
            _build(f"{name}.{index}", value + index, depth - 1)
            for index in range(1, FAN_OUT + 1)
        ],
    )


def build_request(
    seed_name: str = "root",
    seed_value: int = 0,
    depth: int = DEFAULT_DEPTH,
) -> BenchmarkRequest:
    """Wrap a generated tree in the top-level benchmark message."""
    return BenchmarkRequest(root=generate(seed_name, seed_value, depth))


def expected_node_count(depth: int) -> int:
    """Node count of a full tree with the given remaining depth.

    Example:
        >>> expected_node_count(0), expected_node_count(2)
        (1, 73)
    """
    return (FAN_OUT ** (depth + 1) - 1) // (FAN_OUT - 1)


def count_nodes(node: SyntheticNode) -> int:
    """Count nodes iteratively (no recursion limit concerns)."""
    total: int = 0
    stack: list[SyntheticNode] = [node]
    while stack:
        current: SyntheticNode = stack.pop()
        total += 1
        stack.extend(current.children)
    return total


def iter_paths(node: SyntheticNode) -> Iterator[list[int]]:
    """Yield the value chain of every root-to-leaf path."""
    stack: list[tuple[SyntheticNode, list[int]]] = [(node, [node.value])]
    while stack:
        current, path = stack.pop()
        if not current.children:
            yield path
            continue
        for child in reversed(current.children):
            stack.append((child, path + [child.value]))
