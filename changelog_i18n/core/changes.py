"""
Change detection between two nested-record snapshots.

Values are modelled as a tagged variant so the traversal does not depend on
runtime type probing of arbitrary JSON:

- Leaf: a primitive (str, number, bool, None)
- ListValue: an ordered sequence, compared as a whole
- Node: a mapping of string keys to values

detect_changes() returns only the keys (dot-joined full paths) whose value
differs from the previous snapshot, e.g.

    previous = {"a": {"b": 1, "c": 2}}
    current = {"a": {"b": 1, "c": 3}, "d": 4}
    detect_changes(current, previous) == {"a.c": 3, "d": 4}

Keys present only in the previous snapshot are not reported; callers that
need deletions track identifiers themselves (see core.differ).
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union


@dataclass(frozen=True)
class Leaf:
    value: Any


@dataclass(frozen=True)
class ListValue:
    items: List[Any]


@dataclass
class Node:
    children: Dict[str, "ChangeValue"] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.children


ChangeValue = Union[Leaf, ListValue, Node]

_MISSING = object()


def to_change_value(obj: Any) -> ChangeValue:
    """Wrap a JSON-like Python value in the tagged variant."""
    if isinstance(obj, Mapping):
        return Node({str(key): to_change_value(value) for key, value in obj.items()})
    if isinstance(obj, (list, tuple)):
        return ListValue(list(obj))
    return Leaf(obj)


def to_plain(value: ChangeValue) -> Any:
    """Unwrap the tagged variant back to plain dict / list / primitive values."""
    if isinstance(value, Node):
        return {key: to_plain(child) for key, child in value.children.items()}
    if isinstance(value, ListValue):
        return list(value.items)
    return value.value


def _normalize_numbers(value: Any) -> Any:
    # 1.0 and 1 serialize the same way
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(item) for item in value]
    return value


def _canonical_json(value: Any) -> str:
    # order-sensitive for both lists and object keys
    return json.dumps(_normalize_numbers(value), ensure_ascii=False, default=str)


def lists_equal(current: List[Any], previous: Any) -> bool:
    """Whole-list structural equality; element order matters."""
    if not isinstance(previous, (list, tuple)):
        return False
    return _canonical_json(list(current)) == _canonical_json(list(previous))


def leaves_differ(current: Any, previous: Any) -> bool:
    """Strict inequality: a missing previous value, or a bool/number mix, is a change."""
    if previous is _MISSING:
        return True
    if isinstance(current, bool) != isinstance(previous, bool):
        return True
    if type(current) is not type(previous) and not (
        isinstance(current, (int, float)) and isinstance(previous, (int, float))
    ):
        return True
    return current != previous


def _diff_node(current: Node, previous: Optional[Node], key_path: str) -> Node:
    changes = Node()
    previous_children = previous.children if previous is not None else {}

    for key, current_value in current.children.items():
        full_key = f"{key_path}.{key}" if key_path else key
        previous_value = previous_children.get(key, _MISSING)

        if isinstance(current_value, Node):
            previous_node = previous_value if isinstance(previous_value, Node) else None
            nested = _diff_node(current_value, previous_node, full_key)
            if not nested.is_empty():
                changes.children.update(nested.children)
        elif isinstance(current_value, ListValue):
            previous_items = previous_value.items if isinstance(previous_value, ListValue) else None
            if not lists_equal(current_value.items, previous_items):
                changes.children[full_key] = current_value
        else:
            previous_leaf = previous_value.value if isinstance(previous_value, Leaf) else _MISSING
            if leaves_differ(current_value.value, previous_leaf):
                changes.children[full_key] = current_value

    return changes


def detect_change_tree(
    current: Mapping[str, Any],
    previous: Optional[Mapping[str, Any]] = None,
    key_path: str = "",
) -> Node:
    """Changed leaves of `current` relative to `previous`, as a Node keyed by full path."""
    current_node = to_change_value(current)
    if not isinstance(current_node, Node):
        raise TypeError(f"current snapshot must be a mapping, got {type(current).__name__}")
    previous_node = to_change_value(previous) if isinstance(previous, Mapping) else None
    return _diff_node(current_node, previous_node, key_path)


def detect_changes(
    current: Mapping[str, Any],
    previous: Optional[Mapping[str, Any]] = None,
    key_path: str = "",
) -> Dict[str, Any]:
    """Plain-dict form of detect_change_tree()."""
    return to_plain(detect_change_tree(current, previous, key_path))
