"""Dotted-path helpers for nested documents.

Paths use "." between segments. Array positions appear as digit segments in
concrete paths ("tags.0.name") and as "$" in generic paths ("tags.$.name"),
which is how array element rules are keyed in a RuleSet.
"""

from typing import Any, Iterator


class _Missing:
    """Marker for a path that does not exist in a document."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def join(prefix: str, key: str | int) -> str:
    return f"{prefix}.{key}" if prefix else str(key)


def parent(path: str) -> str:
    """Return the parent path, or "" for a top-level key."""
    head, _, _ = path.rpartition(".")
    return head


def generic(path: str) -> str:
    """Replace array indexes with "$" so the path can be looked up as a rule."""
    return ".".join("$" if seg.isdigit() else seg for seg in path.split("."))


def is_ancestor(ancestor: str, path: str) -> bool:
    return path.startswith(ancestor + ".")


def get_path(doc: Any, path: str) -> Any:
    """Return the value at ``path`` or MISSING."""
    current = doc
    for seg in path.split("."):
        if isinstance(current, dict):
            if seg not in current:
                return MISSING
            current = current[seg]
        elif isinstance(current, list) and seg.isdigit():
            index = int(seg)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def set_path(doc: dict, path: str, value: Any) -> None:
    """Set ``value`` at ``path``, creating intermediate objects as needed."""
    segments = path.split(".")
    current: Any = doc
    for seg in segments[:-1]:
        if isinstance(current, list) and seg.isdigit():
            current = current[int(seg)]
            continue
        if not isinstance(current.get(seg), (dict, list)):
            current[seg] = {}
        current = current[seg]
    last = segments[-1]
    if isinstance(current, list) and last.isdigit():
        current[int(last)] = value
    else:
        current[last] = value


def delete_path(doc: dict, path: str) -> None:
    head = parent(path)
    container = get_path(doc, head) if head else doc
    last = path.rsplit(".", 1)[-1]
    if isinstance(container, dict):
        container.pop(last, None)


def iter_nodes(value: Any, prefix: str = "") -> Iterator[tuple[str, Any]]:
    """Yield (concrete_path, value) for every key and array element, depth first."""
    if isinstance(value, dict):
        for key, child in value.items():
            path = join(prefix, key)
            yield path, child
            yield from iter_nodes(child, path)
    elif isinstance(value, list):
        for index, child in enumerate(value):
            path = join(prefix, index)
            yield path, child
            yield from iter_nodes(child, path)


def expand(doc: Any, generic_path: str) -> list[str]:
    """Expand a generic path into the concrete paths whose parent exists in ``doc``.

    ``expand({"tags": [{}, {}]}, "tags.$.name")`` returns
    ``["tags.0.name", "tags.1.name"]``. The leaf itself need not exist.
    """
    paths = [""]
    segments = generic_path.split(".")
    for depth, seg in enumerate(segments):
        is_leaf = depth == len(segments) - 1
        next_paths = []
        for base in paths:
            container = get_path(doc, base) if base else doc
            if seg == "$":
                if isinstance(container, list):
                    next_paths.extend(join(base, i) for i in range(len(container)))
            elif isinstance(container, dict):
                if is_leaf or seg in container:
                    next_paths.append(join(base, seg))
        paths = next_paths
    return paths
