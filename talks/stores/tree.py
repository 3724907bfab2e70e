"""Path and value helpers shared by the key-tree store implementations."""

from typing import Any, Iterator

from talks.stores.interfaces import SERVER_TIMESTAMP


def split_path(path: str) -> list[str]:
    parts = [part for part in path.split("/") if part]
    if not parts:
        raise ValueError("Store path must not be empty")
    return parts


def join_path(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts if part)


def overlaps(a: str, b: str) -> bool:
    """True when a change at one path is visible from the other."""
    return a == b or a.startswith(b + "/") or b.startswith(a + "/")


def normalize(value: Any, now_ms: int) -> Any:
    """Resolve SERVER_TIMESTAMP and drop None or empty children.

    Returns None when nothing is left, which the stores treat as a removal.
    """
    if value is SERVER_TIMESTAMP:
        return now_ms
    if isinstance(value, dict):
        cleaned = {}
        for key, child in value.items():
            child = normalize(child, now_ms)
            if child is not None:
                cleaned[str(key)] = child
        return cleaned or None
    return value


def flatten(path: str, value: Any) -> Iterator[tuple[str, Any]]:
    """Yield (path, leaf) pairs for a normalized value."""
    if isinstance(value, dict):
        for key, child in value.items():
            yield from flatten(f"{path}/{key}", child)
    elif value is not None:
        yield path, value


def get_in(root: dict, parts: list[str]) -> Any:
    node: Any = root
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def set_in(root: dict, parts: list[str], value: Any) -> None:
    node = root
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def delete_in(root: dict, parts: list[str]) -> None:
    """Remove the node at parts and prune parents left empty."""
    trail = [root]
    node: Any = root
    for part in parts[:-1]:
        node = node.get(part) if isinstance(node, dict) else None
        if not isinstance(node, dict):
            return
        trail.append(node)
    trail[-1].pop(parts[-1], None)
    for depth in range(len(parts) - 1, 0, -1):
        if trail[depth]:
            break
        trail[depth - 1].pop(parts[depth - 1], None)


def build_tree(base: str, rows: list[tuple[str, Any]]) -> Any:
    """Rebuild the value at ``base`` from (path, leaf) rows at or below it."""
    tree: dict = {}
    for path, leaf in rows:
        if path == base:
            return leaf
        relative = path[len(base) + 1:]
        set_in(tree, relative.split("/"), leaf)
    return tree or None
