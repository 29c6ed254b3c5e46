import pytest

from deadfn import analyze_sources
from deadfn.analysis import PARALLEL_THRESHOLD, analyze_path
from deadfn.config_loader import DeadfnConfig
from deadfn.errors import ParseError


def _dead(result):
    return [s.full_path for s in result.dead]


def test_public_entry_private_callee_and_unreferenced():
    result = analyze_sources({"src/lib.rs": "pub fn a() { b(); }\nfn b() {}\nfn c() {}\n"})
    assert _dead(result) == ["c"]
    assert result.dead_entries() == [("c", "src/lib.rs")]
    assert result.stats.total_symbols == 3
    assert result.stats.reachable_count == 2
    assert result.stats.private_dead == 1
    assert result.stats.public_dead == 0
    assert result.stats.by_visibility["private"] == {"total": 2, "dead": 1}
    assert result.stats.by_visibility["public"] == {"total": 1, "dead": 0}


def test_empty_project():
    result = analyze_sources({})
    assert result.dead == []
    assert result.stats.total_symbols == 0
    assert result.stats.reachable_count == 0
    assert result.stats.dead_count == 0


def test_self_recursive_private_function_is_dead():
    result = analyze_sources({"src/lib.rs": "fn f(n: u32) -> u32 { if n == 0 { 0 } else { f(n - 1) } }\n"})
    assert _dead(result) == ["f"]
    # the self edge still exists
    assert result.stats.edge_count == 1


def test_mutual_recursion_without_outside_caller_is_dead():
    result = analyze_sources({"src/lib.rs": "fn a() { b(); }\nfn b() { a(); }\n"})
    assert _dead(result) == ["a", "b"]


def test_same_name_in_distinct_files_are_distinct():
    sources = {
        "src/lib.rs": "mod a;\nmod b;\npub fn run() { a::helper(); }\n",
        "src/a.rs": "pub(crate) fn helper() {}\n",
        "src/b.rs": "pub(crate) fn helper() {}\n",
    }
    result = analyze_sources(sources)
    assert result.dead_entries() == [("b::helper", "src/b.rs")]


def test_dead_callers_still_produce_edges():
    result = analyze_sources({"src/lib.rs": "fn unused() { helper(); }\nfn helper() {}\n"})
    assert _dead(result) == ["unused", "helper"]
    graph = result.graph
    assert graph.neighbors(("src/lib.rs", "unused")) == {("src/lib.rs", "helper")}


def test_public_symbols_are_never_dead_by_default():
    result = analyze_sources({"src/lib.rs": "pub fn api() {}\npub fn other() {}\n"})
    assert result.dead == []


def test_method_call_keeps_some_candidate_alive():
    src = """
pub struct Stack { items: Vec<u32> }
impl Stack {
    fn push_item(&mut self, x: u32) { self.items.push(x); }
}
pub fn fill(s: &mut Stack) { s.push_item(1); }
"""
    result = analyze_sources({"src/lib.rs": src})
    assert "Stack::push_item" not in _dead(result)


def test_trait_impls_and_tests_are_roots():
    src = """
struct P;
impl Clone for P {
    fn clone(&self) -> Self { make() }
}
fn make() -> P { P }

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn works() { check(); }

    fn check() {}
}
"""
    result = analyze_sources({"src/lib.rs": src})
    assert result.dead == []


def test_macro_embedded_calls_keep_functions_alive():
    src = """
#[test]
fn t() {
    assert_eq!(compute(), 4);
    println!("{}", render());
}
fn compute() -> i32 { 4 }
fn render() -> String { String::new() }
"""
    assert analyze_sources({"src/lib.rs": src}).dead == []


def test_use_imports_and_super_paths_resolve_to_the_right_file():
    sources = {
        "src/main.rs": "mod util;\nmod net;\nuse crate::util::helper;\nfn main() { helper(); net::client::go(); }\n",
        "src/util.rs": "pub fn helper() {}\n",
        "src/net/mod.rs": "pub mod client;\nfn reset() {}\nfn orphan() {}\n",
        "src/net/client.rs": "pub fn go() { super::reset(); }\n",
        "src/other.rs": "fn helper() {}\nfn reset() {}\n",
    }
    result = analyze_sources(sources)
    # only the unreferenced functions remain
    assert set(result.dead_entries()) == {
        ("net::orphan", "src/net/mod.rs"),
        ("other::helper", "src/other.rs"),
        ("other::reset", "src/other.rs"),
    }


def test_pub_crate_function_without_callers_is_dead():
    result = analyze_sources({"src/lib.rs": "pub(crate) fn internal() {}\n"})
    assert _dead(result) == ["internal"]
    assert result.stats.by_visibility["crate-visible"]["dead"] == 1


def test_module_scope_initialiser_keeps_callee_alive():
    src = "static N: u32 = compute();\nconst fn compute() -> u32 { 1 }\n"
    assert analyze_sources({"src/lib.rs": src}).dead == []


def test_strict_mode_raises_on_any_file():
    with pytest.raises(ParseError):
        analyze_sources({"src/lib.rs": "pub fn a() {}", "src/bad.rs": "fn b( {"}, strict=True)


def test_syntax_errors_become_diagnostics_without_strict():
    result = analyze_sources({"src/lib.rs": "pub fn a() {}\nfn broken() { let x = ; }\n"})
    assert [s.full_path for s in result.dead] == []
    assert len(result.diagnostics) == 1


def test_parallel_extraction_keeps_input_order():
    sources = {f"src/m{i:02d}.rs": "fn unused() {}\n" for i in range(PARALLEL_THRESHOLD + 4)}
    result = analyze_sources(sources, workers=4)
    assert [s.file for s in result.dead] == list(sources)


def test_analyze_path_reads_crate(write_crate):
    root = write_crate(
        {
            "Cargo.toml": "[package]\nname = \"demo\"\n",
            "src/lib.rs": "pub fn a() { b(); }\nfn b() {}\nfn c() {}\n",
            "target/debug/build.rs": "fn ignored() {}\n",
        }
    )
    result = analyze_path(root)
    assert result.dead_entries() == [("c", "src/lib.rs")]
    assert result.failed_files == []


def test_analyze_path_records_unreadable_files(write_crate):
    root = write_crate({"src/lib.rs": "pub fn a() {}\n"})
    (root / "src" / "bad.rs").write_bytes(b"\xff\xfe\x00 not utf8")
    result = analyze_path(root, DeadfnConfig())
    assert result.failed_files == ["src/bad.rs"]
    assert any(d.file == "src/bad.rs" for d in result.diagnostics)


def test_nested_function_shadowing_module_function():
    result = analyze_sources({"src/lib.rs": "pub fn run() { fn helper() {} helper(); }\nfn helper() {}\n"})
    assert result.dead_entries() == [("helper", "src/lib.rs")]


@pytest.mark.parametrize("workers", [0, -2])
def test_workers_below_one_are_rejected(workers):
    sources = {f"src/m{i}.rs": "pub fn f() {}" for i in range(PARALLEL_THRESHOLD + 2)}
    with pytest.raises(ValueError):
        analyze_sources(sources, workers=workers)
