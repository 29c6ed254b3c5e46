import pytest

from deadfn.calls import extract_calls
from deadfn.errors import ParseError


def _calls(file, src):
    return extract_calls(file, src).calls


def _one(calls, name):
    found = [c for c in calls if c.callee_name == name]
    assert len(found) == 1, found
    return found[0]


def test_plain_qualified_and_method_calls():
    src = """
mod util { pub fn helper() {} }
pub fn run() {
    helper();
    util::build();
    crate::util::check();
    self::util::verify();
    let v = Vec::new();
    v.len();
    parse::<u8>();
}
"""
    calls = _calls("src/lib.rs", src)
    assert {c.enclosing_symbol for c in calls} == {"run"}

    plain = _one(calls, "helper")
    assert plain.path is None
    assert plain.resolved_path == "helper"
    assert not plain.is_method_call

    assert _one(calls, "build").path == "util::build"
    assert _one(calls, "build").resolved_path == "util::build"
    assert _one(calls, "check").resolved_path == "util::check"
    assert _one(calls, "verify").resolved_path == "util::verify"
    assert _one(calls, "new").path == "Vec::new"

    method = _one(calls, "len")
    assert method.is_method_call
    assert method.path is None
    assert method.resolved_path is None

    turbofish = _one(calls, "parse")
    assert turbofish.resolved_path == "parse"


def test_calls_in_submodule_file_are_module_relative():
    calls = _calls("src/net/client.rs", "fn go() { ping(); super::reset(); }")
    assert _one(calls, "ping").resolved_path == "net::client::ping"
    assert _one(calls, "reset").resolved_path == "net::reset"
    assert _one(calls, "ping").enclosing_symbol == "net::client::go"


def test_self_calls_resolve_to_impl_owner():
    src = """
pub struct Server;
impl Server {
    pub fn start(&self) {
        Self::init();
        self.tick();
    }
    fn init() {}
    fn tick(&self) {}
}
"""
    calls = _calls("src/lib.rs", src)
    assert _one(calls, "init").resolved_path == "Server::init"
    tick = _one(calls, "tick")
    assert tick.is_method_call
    assert tick.resolved_path == "Server::tick"
    assert tick.enclosing_symbol == "Server::start"


def test_macro_arguments_yield_calls():
    src = """
pub fn t() {
    assert_eq!(check(), 1);
    println!("{}", obj.describe());
    let v = vec![util::make(), 2];
}
"""
    calls = _calls("src/lib.rs", src)
    check = _one(calls, "check")
    assert check.from_macro
    assert not check.is_method_call
    describe = _one(calls, "describe")
    assert describe.from_macro
    assert describe.is_method_call
    make = _one(calls, "make")
    assert make.path == "util::make"
    # macro names themselves are not calls
    assert not [c for c in calls if c.callee_name in ("assert_eq", "println", "vec")]


def test_closures_stay_with_enclosing_function_and_module_scope_uses_sentinel():
    src = """
static TABLE: Lazy<u32> = Lazy::new(|| build());
fn build() -> u32 { 1 }
pub fn go() {
    let f = || work();
    f();
    [1].iter().map(|x| helper(x));
}
"""
    calls = _calls("src/lib.rs", src)
    assert _one(calls, "build").enclosing_symbol == "<module>"
    assert _one(calls, "work").enclosing_symbol == "go"
    assert _one(calls, "helper").enclosing_symbol == "go"


def test_nested_function_calls_get_their_own_enclosing():
    src = "fn outer() {\n    fn inner() { leaf(); }\n    inner();\n}\n"
    calls = _calls("src/lib.rs", src)
    assert _one(calls, "leaf").enclosing_symbol == "outer::inner"
    assert _one(calls, "inner").enclosing_symbol == "outer"


def test_use_declarations_build_the_import_map():
    src = """
use crate::util::helper;
use crate::net::{self, client::connect as dial, Server};
use std::collections::*;

fn main() {
    helper();
    dial();
    net::ping();
}
"""
    result = extract_calls("src/main.rs", src)
    assert result.uses[""] == {
        "helper": "util::helper",
        "net": "net",
        "dial": "net::client::connect",
        "Server": "net::Server",
    }
    calls = result.calls
    assert _one(calls, "helper").resolved_path == "util::helper"
    assert _one(calls, "helper").path == "util::helper"
    assert _one(calls, "dial").resolved_path == "net::client::connect"
    assert _one(calls, "ping").resolved_path == "net::ping"


def test_use_written_after_the_call_still_applies():
    src = "fn main() { helper(); }\nuse crate::util::helper;\n"
    assert _one(_calls("src/main.rs", src), "helper").resolved_path == "util::helper"


def test_use_super_in_child_module_file():
    result = extract_calls("src/net/client.rs", "use super::helper;\nfn go() { helper(); }")
    assert result.uses["net::client"] == {"helper": "net::helper"}
    assert _one(result.calls, "helper").resolved_path == "net::helper"


def test_strict_mode_raises():
    with pytest.raises(ParseError):
        extract_calls("src/lib.rs", "fn broken() { let x = ; }", strict=True)


def test_broken_function_skipped_but_others_scanned():
    result = extract_calls("src/lib.rs", "fn broken() { let x = ; }\nfn ok() { helper(); }\n")
    assert [c.callee_name for c in result.calls] == ["helper"]
    assert result.diagnostics
