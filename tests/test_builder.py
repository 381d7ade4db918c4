import logging
import sys
from pathlib import Path

import pytest

# Ensure package root is importable when running tests directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from recipe2dag import builder, parser
from recipe2dag.compilation import compile_source
from recipe2dag.dag import Dag, DagNode, new_id
from recipe2dag.imports import ImportFailure
from recipe2dag.syntax import CallNode, NamespaceNode, RecipeNode, StyleNode


async def _dag(code: str, resolver=None) -> Dag:
    return (await compile_source(code, resolver)).dag


class StaticResolver:
    """Resolver handing out a freshly built Dag per location."""

    def __init__(self, factories):
        self.factories = factories
        self.calls = []

    async def resolve(self, location, in_flight):
        self.calls.append((location, in_flight))
        if location not in self.factories:
            raise ImportFailure(f"unknown location {location}")
        return self.factories[location]()


def _styles_dag(value: str) -> Dag:
    dag = Dag(name="ignored")
    dag.set_style("x", {"k": value})
    node = DagNode(id=new_id(), name="lib_call")
    dag.add_node(node)
    dag.set_var_node("hidden", node.id)
    return dag


@pytest.mark.asyncio
async def test_round_trip_water_heat_serve():
    dag = await _dag("w = water(); hot = heat(w); serve(hot)")
    assert dag.get_node_name_list() == ["heat", "serve", "water"]
    assert dag.get_edge_names_list() == [("heat", "serve"), ("water", "heat")]
    names = {(dag.endpoint_name(e.src_node_id), e.name) for e in dag.get_edge_list()}
    assert names == {("water", "w"), ("heat", "hot")}


@pytest.mark.asyncio
async def test_call_creates_one_node_and_edge_per_resolvable_arg(caplog):
    code = '''
a = src()
b = src()
f(a, b, missing)
'''
    with caplog.at_level(logging.WARNING):
        dag = await _dag(code)
    f = next(n for n in dag.get_node_list() if n.name == "f")
    incoming = [e for e in dag.get_edge_list() if e.dest_node_id == f.id]
    assert len(incoming) == 2
    assert sorted(e.name for e in incoming) == ["a", "b"]
    assert len(dag.get_node_list()) == 3
    assert "Unable to find variable with name missing" in caplog.text


@pytest.mark.asyncio
async def test_nested_call_arguments_compile_depth_first():
    dag = await _dag("outer(inner(leaf()))")
    assert dag.get_edge_names_list() == [("inner", "outer"), ("leaf", "inner")]
    assert all(e.name == "" for e in dag.get_edge_list())


@pytest.mark.asyncio
async def test_alias_creates_no_node():
    aliased = await _dag("y = f(); x = y; g(x)")
    direct = await _dag("y = f(); g(y)")
    assert len(aliased.get_node_list()) == len(direct.get_node_list()) == 2
    assert aliased.get_var_node(["x"]) == aliased.get_var_node(["y"])
    assert [e.name for e in aliased.get_edge_list()] == ["x"]


@pytest.mark.asyncio
async def test_alias_of_undefined_variable_is_skipped(caplog):
    with caplog.at_level(logging.WARNING):
        dag = await _dag("x = nothing\ng(x)")
    assert dag.get_var_node(["x"]) is None
    assert dag.get_edge_list() == []
    assert "var nothing not found" in caplog.text


@pytest.mark.asyncio
async def test_multi_assignment_binds_every_name_to_one_node():
    dag = await _dag("a, b = f(); g(a); h(b)")
    f = next(n for n in dag.get_node_list() if n.name == "f")
    assert dag.get_var_node(["a"]) == dag.get_var_node(["b"]) == f.id
    assert all(e.src_node_id == f.id for e in dag.get_edge_list())
    assert len(dag.get_edge_list()) == 2


@pytest.mark.asyncio
async def test_rebinding_does_not_rewrite_existing_edges():
    dag = await _dag("x = first(); use(x); x = second(); use(x)")
    assert dag.get_edge_names_list() == [("first", "use"), ("second", "use")]


@pytest.mark.asyncio
async def test_variable_style_goes_on_edges_not_nodes():
    dag = await _dag("#s{width: 4}\nx{ #s; line-color: silver } = f()\ng(x)")
    f = next(n for n in dag.get_node_list() if n.name == "f")
    assert f.style_tags == [] and f.style_properties == {}
    (edge,) = dag.get_edge_list()
    assert edge.style_tags == [["s"]]
    assert edge.style_properties == {"line-color": "silver"}


@pytest.mark.asyncio
async def test_call_style_goes_on_node():
    dag = await _dag('#hot{color: red}\nf(){ #hot; shape: "box"; "boils water" }')
    (node,) = dag.get_node_list()
    assert node.style_tags == [["hot"]]
    assert node.style_properties == {"shape": "box", "description": "boils water"}


@pytest.mark.asyncio
async def test_named_style_flattening_through_compile(caplog):
    with caplog.at_level(logging.WARNING):
        dag = await _dag("#b{#a}\n#a{k:1}\n#c{k:2; #a}\n#d{#c; k:3}")
    flat = dag.get_flattened_styles()
    assert flat["b"] == {}
    assert flat["c"] == {"k": "2"}
    assert flat["d"] == {"k": "3"}
    assert "styleTag a not found" in caplog.text


@pytest.mark.asyncio
async def test_style_binding_recorded_verbatim():
    dag = await _dag("%serve{ #missing #hot.inner }")
    assert dag.get_style_bindings() == {"serve": [["missing"], ["hot", "inner"]]}
    assert dag.get_flattened_styles() == {}


@pytest.mark.asyncio
async def test_namespace_is_a_closed_scope():
    code = '''
outside = f()
n[
    inside = g(outside)
    result = h(inside)
](outside){ #box }
'''
    dag = await _dag(code)
    (child,) = dag.get_child_dags()
    assert child.name == "n"
    assert child.style_tags == [["box"]]
    assert child.parent is dag
    # `outside` is not visible inside the namespace
    assert child.get_edge_names_list() == [("g", "h")]
    assert dag.get_edge_names_list() == [("f", "n")]
    assert dag.get_var_node(["n", "result"]) is not None
    assert child.get_var_node(["outside"]) is None


@pytest.mark.asyncio
async def test_qualified_reference_uses_namespace_placeholder():
    code = '''
n[ result = h() ]
consume(n.result)
alias = n.result
other(alias)
consume(n.nothing)
'''
    dag = await _dag(code)
    (child,) = dag.get_child_dags()
    edges = dag.get_edge_list()
    assert len(edges) == 2
    assert all(e.src_node_id == child.id for e in edges)
    assert sorted(e.name for e in edges) == ["alias", "result"]


@pytest.mark.asyncio
async def test_namespace_assignment_binds_child_id():
    dag = await _dag("x = n[ a = f() ]\ng(x)\ny = []")
    children = dag.get_child_dags()
    assert len(children) == 2
    assert dag.get_var_node(["x"]) == children[0].id
    assert dag.get_edge_names_list() == [("n", "g")]
    assert dag.get_var_node(["y"]) == children[1].id


@pytest.mark.asyncio
async def test_unknown_statement_kind_is_logged_and_skipped(caplog):
    recipe = RecipeNode([object(), CallNode("f")])
    with caplog.at_level(logging.ERROR):
        dag = await builder.make_dag(recipe)
    assert dag.get_node_name_list() == ["f"]
    assert "Unknown statement type object" in caplog.text


@pytest.mark.asyncio
async def test_unknown_argument_kind_is_logged_and_skipped(caplog):
    recipe = RecipeNode([CallNode("f", [object()])])
    with caplog.at_level(logging.ERROR):
        dag = await builder.make_dag(recipe)
    assert dag.get_node_name_list() == ["f"]
    assert "Unknown argument type object" in caplog.text


@pytest.mark.asyncio
async def test_make_sub_dag_carries_namespace_style():
    ns = NamespaceNode("n", [CallNode("f")], [], StyleNode({"k": "v"}, [["t"]]))
    dag = await builder.make_sub_dag(ns)
    assert dag.name == "n"
    assert dag.style_properties == {"k": "v"}
    assert dag.style_tags == [["t"]]


@pytest.mark.asyncio
async def test_compiles_are_deterministic_up_to_ids():
    code = "#s{k:1}\na, b = f()\nc = g(a, b){#s}\nn[x = h()](c)\nout(c)"
    first = await _dag(code)
    second = await _dag(code)
    assert first.get_node_name_list() == second.get_node_name_list()
    assert first.get_edge_names_list() == second.get_edge_names_list()
    assert first.get_flattened_styles() == second.get_flattened_styles()
    assert {n.id for n in first.get_node_list()}.isdisjoint({n.id for n in second.get_node_list()})


@pytest.mark.asyncio
async def test_aliased_import_nests_under_fresh_id():
    resolver = StaticResolver({"lib": lambda: _styles_dag("lib")})
    dag = await _dag('lib @ "lib"\nx = other @ "lib"\nuse(x)', resolver)
    children = dag.get_child_dags()
    assert [c.name for c in children] == ["lib", "other"]
    assert children[0].id != children[1].id
    assert dag.get_var_node(["x"]) == children[1].id
    assert dag.get_edge_names_list() == [("other", "use")]
    assert dag.get_used_imports() == {"lib"}
    assert dag.get_style(["lib", "x"]) == {"k": "lib"}


@pytest.mark.asyncio
async def test_unaliased_import_merges_with_last_write_wins():
    resolver = StaticResolver({"lib": lambda: _styles_dag("child")})
    dag = await _dag('#x{k: parent}\n@ "lib"\n#y{#x}', resolver)
    assert dag.get_style(["x"]) == {"k": "child"}
    assert dag.get_style(["y"]) == {"k": "child"}
    assert dag.get_node_name_list() == ["lib_call"]
    assert dag.get_child_dags() == []
    # Imported variables stay private to the import
    assert dag.get_var_node(["hidden"]) is None


@pytest.mark.asyncio
async def test_failed_standalone_import_is_skipped(caplog):
    resolver = StaticResolver({})
    with caplog.at_level(logging.WARNING):
        dag = await _dag('@ "nowhere"\nf()', resolver)
    assert dag.get_node_name_list() == ["f"]
    assert dag.get_used_imports() == {"nowhere"}
    assert "Import failed" in caplog.text


@pytest.mark.asyncio
async def test_failed_assignment_import_drops_only_that_assignment(caplog):
    resolver = StaticResolver({})
    with caplog.at_level(logging.WARNING):
        dag = await _dag('x = @ "nowhere"\ny = f()\ng(x, y)', resolver)
    assert dag.get_var_node(["x"]) is None
    assert dag.get_edge_names_list() == [("f", "g")]
    assert "Assignment failed" in caplog.text


@pytest.mark.asyncio
async def test_import_without_resolver_fails_softly(caplog):
    with caplog.at_level(logging.WARNING):
        dag = await _dag('@ "lib"\nf()')
    assert dag.get_node_name_list() == ["f"]
    assert "No import resolver configured" in caplog.text


@pytest.mark.asyncio
async def test_imports_resolve_sequentially_in_source_order():
    resolver = StaticResolver({"a": lambda: _styles_dag("a"), "b": lambda: _styles_dag("b")})
    dag = await _dag('@ "a"\n@ "b"', resolver)
    assert [loc for loc, _ in resolver.calls] == ["a", "b"]
    assert dag.get_style(["x"]) == {"k": "b"}


@pytest.mark.asyncio
async def test_in_flight_set_reaches_resolver():
    resolver = StaticResolver({"lib": lambda: _styles_dag("lib")})
    await compile_source('@ "lib"', resolver, frozenset({"main"}))
    assert resolver.calls == [("lib", frozenset({"main"}))]


@pytest.mark.asyncio
async def test_incomplete_assignment_is_skipped():
    dag = await builder.make_dag(parser.parse("x =\nf()"))
    assert dag.get_var_name_to_node_id_map() == {}
    assert dag.get_node_name_list() == ["f"]
