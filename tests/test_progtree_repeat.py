import pytest

from progtree import TreeRunner
from progtree.progtree_datatypes import (
    Construct as C, construct, block, symbol, to_python,
    EMIT, ADDITION, ASSIGNMENT, LESS, GREATER_OR_EQUALS, NULL,
)


async def run_tree(expr, runner=None):
    runner = runner or TreeRunner()
    return await runner.handle_tree(expr)


def assert_ok(res, expected=None):
    assert res.status == 'success', res.error_message
    if expected is not None:
        assert to_python(res.value) == expected


def assert_error(res, contains: str | None = None):
    assert res.status == 'error', f"expected error, got success: {res.value!r}"
    if contains is not None:
        assert contains in (res.error_message or ""), f"error did not contain {contains!r}: {res.error_message!r}"


def stdout(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


def emit(*parts):
    return construct(EMIT, *parts)


def increment(name):
    return construct(ASSIGNMENT, symbol(name), construct(ADDITION, symbol(name), 1))


# --- While ---

@pytest.mark.asyncio
async def test_while_counter_yields_last_body_value():
    runner = TreeRunner()
    runner.bind("i", 0)
    loop = construct(C.WHILE, construct(LESS, symbol("i"), 3),
                     block(increment("i"), emit(symbol("i")), symbol("i")))
    res = await run_tree(loop, runner)
    assert_ok(res, 3)
    assert stdout(res) == ["1", "2", "3"]
    assert to_python(runner.lookup("i")) == 3


@pytest.mark.asyncio
async def test_while_false_never_runs_body():
    res = await run_tree(construct(C.WHILE, False, emit("body")))
    assert_ok(res)
    assert res.value.tag == NULL
    assert stdout(res) == []


@pytest.mark.asyncio
async def test_while_condition_is_reevaluated_from_a_fresh_copy():
    runner = TreeRunner()
    runner.bind("i", 0)
    # the condition emits each time it is evaluated
    cond = block(emit("check"), construct(LESS, symbol("i"), 2))
    res = await run_tree(construct(C.WHILE, cond, increment("i")), runner)
    assert_ok(res, 2)
    assert stdout(res) == ["check", "check", "check"]


@pytest.mark.asyncio
@pytest.mark.parametrize("cond", [1, "yes", symbol("flag")])
async def test_while_non_boolean_condition(cond):
    res = await run_tree(construct(C.WHILE, cond, emit("body")))
    assert_error(res, "It is not a boolean expression")
    assert stdout(res) == []


@pytest.mark.asyncio
async def test_while_condition_turning_non_boolean_midway():
    runner = TreeRunner()
    runner.bind("flag", True)
    body = block(emit("body"), construct(ASSIGNMENT, symbol("flag"), 0))
    res = await run_tree(construct(C.WHILE, symbol("flag"), body), runner)
    assert_error(res, "It is not a boolean expression")
    assert stdout(res) == ["body"]
    assert to_python(res.error_node) == 0


@pytest.mark.asyncio
async def test_while_iteration_limit():
    runner = TreeRunner(max_loop_iters=5)
    res = await run_tree(construct(C.WHILE, True, emit("spin")), runner)
    assert_error(res, "Iteration limit exceeded")
    assert stdout(res) == ["spin"] * 5
    assert res.error_node.tag == C.WHILE


@pytest.mark.asyncio
async def test_while_iteration_limit_from_environment(monkeypatch):
    monkeypatch.setenv("PROGTREE_MAX_LOOP_ITERS", "3")
    res = await run_tree(construct(C.WHILE, True, emit("spin")))
    assert_error(res, "Iteration limit exceeded")
    assert len(stdout(res)) == 3


@pytest.mark.asyncio
async def test_while_inside_block():
    runner = TreeRunner()
    runner.bind("i", 0)
    tree = block(
        construct(C.WHILE, construct(LESS, symbol("i"), 2), increment("i")),
        emit("done", symbol("i")),
        symbol("i"),
    )
    res = await run_tree(tree, runner)
    assert_ok(res, 2)
    assert stdout(res) == ["done 2"]


# --- Until ---

@pytest.mark.asyncio
async def test_until_runs_body_at_least_once():
    res = await run_tree(construct(C.UNTIL, block(emit("body"), "once"), True))
    assert_ok(res, "once")
    assert stdout(res) == ["body"]


@pytest.mark.asyncio
async def test_until_counter():
    runner = TreeRunner()
    runner.bind("i", 0)
    loop = construct(C.UNTIL, block(increment("i"), emit(symbol("i")), symbol("i")),
                     construct(GREATER_OR_EQUALS, symbol("i"), 3))
    res = await run_tree(loop, runner)
    assert_ok(res, 3)
    assert stdout(res) == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_until_non_boolean_condition():
    res = await run_tree(construct(C.UNTIL, emit("body"), "no"))
    assert_error(res, "It is not a boolean expression")
    # the body ran before the condition was checked
    assert stdout(res) == ["body"]


@pytest.mark.asyncio
async def test_until_iteration_limit():
    runner = TreeRunner(max_loop_iters=4)
    res = await run_tree(construct(C.UNTIL, emit("spin"), False), runner)
    assert_error(res, "Iteration limit exceeded")
    assert len(stdout(res)) == 4


@pytest.mark.asyncio
async def test_disabled_iteration_limit_still_terminates_normally():
    runner = TreeRunner(max_loop_iters=0)
    runner.bind("i", 0)
    res = await run_tree(construct(C.WHILE, construct(LESS, symbol("i"), 50), increment("i")), runner)
    assert_ok(res, 50)


@pytest.mark.asyncio
@pytest.mark.parametrize("tag", [C.WHILE, C.UNTIL])
async def test_repeat_arity(tag):
    assert_error(await run_tree(construct(tag, True)), "Invalid number of children")
