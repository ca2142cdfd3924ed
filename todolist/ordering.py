from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .errors import NotFound, ValidationFailed

T = TypeVar("T")

Order = Tuple[int, int]  # (task id, position)


def next_position(max_position: Optional[int]) -> int:
    """Position for a task appended to a list whose highest position is ``max_position``."""
    return 0 if max_position is None else max_position + 1


def validate_orders(orders: Sequence[Order]) -> None:
    if not orders:
        raise ValidationFailed("Task orders array is required", field="taskOrders")
    ids = [task_id for task_id, _ in orders]
    if len(set(ids)) != len(ids):
        raise ValidationFailed("Each task may appear only once", field="taskOrders")
    positions = [position for _, position in orders]
    if len(set(positions)) != len(positions):
        raise ValidationFailed("Positions must be unique", field="taskOrders")


def plan_reorder(current: Dict[int, int], orders: Sequence[Order]) -> Dict[int, int]:
    """Compute every position write needed to apply ``orders`` to a list.

    ``current`` maps the ids of the tasks in the list to their positions.
    Nothing is planned unless every requested id belongs to the list. Tasks
    left out of ``orders`` keep their position unless a requested position
    takes it, in which case they move after the highest position in use,
    keeping their relative order. Gaps are never compacted.

    Only positions that actually change are returned.
    """
    validate_orders(orders)
    for task_id, _ in orders:
        if task_id not in current:
            raise NotFound(f"Task {task_id} not found")

    writes = {task_id: position for task_id, position in orders}
    taken = set(writes.values())
    untouched = sorted((pos, tid) for tid, pos in current.items() if tid not in writes)
    ceiling = max(list(taken) + [pos for pos, _ in untouched])
    for pos, tid in untouched:
        if pos in taken:
            ceiling += 1
            writes[tid] = ceiling
            taken.add(ceiling)
        else:
            taken.add(pos)
    return {tid: pos for tid, pos in writes.items() if current.get(tid) != pos}


def move_item(items: Sequence[T], old_index: int, new_index: int) -> List[T]:
    """Return ``items`` with the element at ``old_index`` moved to ``new_index``."""
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def orders_for(ids: Iterable[int]) -> List[dict]:
    return [{"id": task_id, "position": index} for index, task_id in enumerate(ids)]
