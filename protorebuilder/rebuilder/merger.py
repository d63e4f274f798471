"""Merge modules to minimize the number of output files.

Merging must keep two properties of the module graph: a module never spans
two namespaces, and the graph stays acyclic (.proto imports may not form a
cycle). The merge runs in phases, each to a fixed point:

1. collapse dependency cycles whose modules share a namespace
2. merge modules with no dependencies, per namespace
3. merge modules with no dependents, per namespace
4. merge modules with the same dependencies and dependents, per namespace
5. merge remaining pairs, per namespace, whenever that creates no cycle

The graph is validated at the end.
"""

import logging
from collections.abc import Callable, Hashable, Iterable
from enum import Enum, auto

from .context import RebuildContext
from .types import InvariantViolation, Module

logger = logging.getLogger(__name__)


class NodeState(Enum):
    """DFS coloring. Nodes without a state are unvisited."""

    VISITING = auto()
    VISITED = auto()


def find_cycle(nodes: Iterable[int], successors: Callable[[int], list[int]]) -> list[int] | None:
    """Find one cycle in a directed graph.

    Returns the cycle as a path that starts and ends with the same node, or
    None if the graph is acyclic. The traversal is an iterative DFS with an
    explicit stack, so it can run over a graph view without mutating it.
    """
    state: dict[int, NodeState] = {}

    for start in nodes:
        if start in state:
            continue

        state[start] = NodeState.VISITING
        path = [start]
        stack = [iter(successors(start))]
        while stack:
            for neighbor in stack[-1]:
                neighbor_state = state.get(neighbor)
                if neighbor_state is None:
                    state[neighbor] = NodeState.VISITING
                    path.append(neighbor)
                    stack.append(iter(successors(neighbor)))
                    break
                if neighbor_state == NodeState.VISITING:
                    cycle = path[path.index(neighbor) :]
                    cycle.append(neighbor)
                    return cycle
            else:
                state[path.pop()] = NodeState.VISITED
                stack.pop()

    return None


def get_cycle(ctx: RebuildContext) -> list[Module] | None:
    """Find one cycle among the live modules."""
    cycle = find_cycle(sorted(ctx.modules), lambda i: sorted(ctx.modules[i].depends_on))
    if cycle is None:
        return None
    return [ctx.modules[i] for i in cycle]


def has_cycle_when_merged(ctx: RebuildContext, first: Module, second: Module) -> bool:
    """Check whether merging two modules would create a cycle.

    The pair is contracted into a single node (``first``) in a read-only view
    of the graph, which gives the same answer as merging and then checking.
    """
    pair = {first.id, second.id}

    def representative(module_id: int) -> int:
        return first.id if module_id in pair else module_id

    def successors(module_id: int) -> list[int]:
        if module_id == first.id:
            edges = first.depends_on | second.depends_on
            return sorted({representative(i) for i in edges if i not in pair})
        return sorted({representative(i) for i in ctx.modules[module_id].depends_on})

    nodes = sorted({representative(i) for i in ctx.modules})
    return find_cycle(nodes, successors) is not None


def _format_modules(modules: Iterable[Module]) -> str:
    return " -> ".join(f"{m.id} ({m.namespace!r})" for m in modules)


def merge_cycles_in_same_namespace(ctx: RebuildContext) -> None:
    """Collapse cycles whose modules all share a namespace.

    Stops at the first cycle that spans namespaces; later phases and the
    final validation decide whether it is fatal.
    """
    while True:
        cycle = get_cycle(ctx)
        if cycle is None:
            break

        first, others = cycle[0], cycle[1:-1]
        if not others:
            raise InvariantViolation(f"Module {first.id} depends on itself")

        if any(m.namespace != first.namespace for m in others):
            logger.warning("  Cannot merge cycle spanning namespaces: %s", _format_modules(cycle))
            break

        for other in others:
            first.merge(ctx, other)


def _group_by_namespace(ctx: RebuildContext) -> list[list[Module]]:
    groups: dict[str, list[Module]] = {}
    for module in ctx.sorted_modules():
        groups.setdefault(module.namespace, []).append(module)
    return [groups[namespace] for namespace in sorted(groups)]


def merge_groups(ctx: RebuildContext, group_key: Callable[[Module], Hashable | None]) -> None:
    """Merge modules that share a namespace and a group key.

    Modules whose key is None are left alone. Repeats until a pass performs
    no merge.
    """
    while True:
        groups: dict[tuple[str, Hashable], list[Module]] = {}
        for module in ctx.sorted_modules():
            key = group_key(module)
            if key is not None:
                groups.setdefault((module.namespace, key), []).append(module)

        merges = 0
        for modules in groups.values():
            combined, *others = modules
            for other in others:
                combined.merge(ctx, other)
                merges += 1

        if merges == 0:
            break


def _without_dependencies(module: Module) -> Hashable | None:
    return () if not module.depends_on else None


def _without_dependents(module: Module) -> Hashable | None:
    return () if not module.depended_on_by else None


def _same_neighbors(module: Module) -> Hashable | None:
    return (frozenset(module.depends_on), frozenset(module.depended_on_by))


def merge_until_cycle(ctx: RebuildContext) -> None:
    """Greedily merge same-namespace pairs that do not create a cycle.

    A module takes part in at most one merge per round; rounds repeat until
    one performs no merge.
    """
    while True:
        merged: set[int] = set()
        for group in _group_by_namespace(ctx):
            for i, first in enumerate(group):
                for second in group[i + 1 :]:
                    if first.id in merged or second.id in merged:
                        continue
                    if has_cycle_when_merged(ctx, first, second):
                        continue

                    first.merge(ctx, second)
                    merged |= {first.id, second.id}

        if not merged:
            break


def validate_graph(ctx: RebuildContext) -> None:
    """Check the final module graph; any problem is an algorithm defect."""
    for name, module_id in sorted(ctx.message_module.items()):
        if module_id not in ctx.modules:
            raise InvariantViolation(f"Message {name} is assigned to removed module {module_id}")

    for name, module_id in sorted(ctx.enum_module.items()):
        if module_id not in ctx.modules:
            raise InvariantViolation(f"Enum {name} is assigned to removed module {module_id}")

    for module in ctx.sorted_modules():
        if module.removed:
            raise InvariantViolation(f"Module {module.id} is removed but still live")

        dangling = (module.depends_on | module.depended_on_by) - ctx.modules.keys()
        if dangling:
            raise InvariantViolation(
                f"Module {module.id} ({module.namespace!r}) references removed modules {sorted(dangling)}"
            )

        for name in module.root_messages:
            if ctx.messages[name].namespace != module.namespace:
                raise InvariantViolation(
                    f"Message {name} does not belong to namespace {module.namespace!r} of module {module.id}"
                )
        for name in module.root_enums:
            if ctx.enums[name].namespace != module.namespace:
                raise InvariantViolation(
                    f"Enum {name} does not belong to namespace {module.namespace!r} of module {module.id}"
                )

    cycle = get_cycle(ctx)
    if cycle is not None:
        raise InvariantViolation(f"There is a cycle in module dependencies: {_format_modules(cycle)}")


def _run_phase(ctx: RebuildContext, description: str, phase: Callable[[], None]) -> None:
    logger.info(description)
    before = len(ctx.modules)
    phase()
    logger.info("  Modules before: %d, after: %d", before, len(ctx.modules))


def merge_modules(ctx: RebuildContext) -> None:
    """Run every merge phase and validate the resulting graph."""
    _run_phase(ctx, "Merging module cycles...", lambda: merge_cycles_in_same_namespace(ctx))
    _run_phase(
        ctx,
        "Merging modules with no dependencies...",
        lambda: merge_groups(ctx, _without_dependencies),
    )
    _run_phase(
        ctx,
        "Merging modules with no dependents...",
        lambda: merge_groups(ctx, _without_dependents),
    )
    _run_phase(
        ctx,
        "Merging modules with same dependencies and dependents...",
        lambda: merge_groups(ctx, _same_neighbors),
    )
    _run_phase(
        ctx,
        "Merging remaining modules until a cycle is created...",
        lambda: merge_until_cycle(ctx),
    )

    logger.info("Validating the final module graph...")
    validate_graph(ctx)
    logger.info("No issues found.")
