from hypothesis import given, strategies as st

from deadfn.graph_traversal import AdjacencyGraph

NODES = st.integers(min_value=0, max_value=12)


def _graph(nodes, edges):
    g = AdjacencyGraph()
    for n in nodes:
        g.add_node(n)
    for a, b in edges:
        g.add_edge(a, b)
    return g


graphs = st.builds(
    _graph,
    st.lists(NODES, max_size=13),
    st.lists(st.tuples(NODES, NODES), max_size=40),
)


class _ReversedPop(AdjacencyGraph):
    """Same graph, neighbours handed out in the opposite order."""

    def neighbors(self, node):
        return sorted(self.edges.get(node, ()), reverse=True)


def test_cycle_and_self_loop_terminate():
    g = _graph([], [(1, 2), (2, 1), (3, 3)])
    assert g.reachable_from([1]) == {1, 2}
    assert g.reachable_from([3]) == {3}


def test_roots_outside_graph_are_ignored():
    g = _graph([1], [])
    assert g.reachable_from([1, 99]) == {1}
    assert g.reachable_from_single(99) == set()


def test_explain_path_shortest_chain():
    g = _graph([], [(1, 2), (2, 3), (3, 4), (1, 4)])
    assert g.explain_path([1], 4) == [1, 4]
    assert g.explain_path([2], 4) == [2, 3, 4]
    assert g.explain_path([4], 1) is None
    assert g.explain_path([1], 42) is None
    assert g.explain_path([3], 3) == [3]


@given(graphs, st.lists(NODES, max_size=5))
def test_reachable_is_idempotent(g, roots):
    once = g.reachable_from(roots)
    assert g.reachable_from(once) == once


@given(graphs, st.lists(NODES, max_size=5))
def test_reachable_is_closed_under_edges(g, roots):
    reach = g.reachable_from(roots)
    for u in reach:
        for v in g.neighbors(u):
            assert v in reach


@given(st.lists(NODES, max_size=13), st.lists(st.tuples(NODES, NODES), max_size=40), st.lists(NODES, max_size=5))
def test_reachable_independent_of_pop_order(nodes, edges, roots):
    forward = _graph(nodes, edges)
    backward = _ReversedPop()
    for n in nodes:
        backward.add_node(n)
    for a, b in reversed(edges):
        backward.add_edge(a, b)
    assert forward.reachable_from(roots) == backward.reachable_from(list(reversed(roots)))


@given(graphs, st.lists(NODES, max_size=5), NODES)
def test_explain_path_agrees_with_reachability(g, roots, target):
    chain = g.explain_path(roots, target)
    reach = g.reachable_from(roots)
    if chain is None:
        assert target not in reach
    else:
        assert chain[-1] == target
        assert chain[0] in roots
        for a, b in zip(chain, chain[1:]):
            assert b in g.neighbors(a)
