"""
Reduction rules for the programming constructs: blocks, conditionals,
counted/ranged/collection loops, while/until loops and switches.

Every construct except Block is self-controlling: its children arrive
unreduced and the rule decides which of them are reduced, in which
order and how many times. Loop bodies are kept as an untouched template
and a fresh clone is installed in the body slot for every iteration.
"""
from progtree.progtree_datatypes import (
    Node, ScopeEntry, Construct, null,
    TRUE, FALSE, SYMBOL, LIST, COMPARE, IN, COMPARISON_EQUALS,
)
from progtree.progtree_primitives import (
    is_internal_number, get_native_integer, create_internal_number,
    comparison, addition, is_negative, INTEGER_ONE,
)
from progtree.progtree_registry import exactly, between, at_least

NOT_BOOLEAN = "Expression is not a boolean expression"


# =================================================================
# Block
# =================================================================

async def block_reducer(block: Node, session) -> bool:
    # children were already reduced, in order, by the session
    block.replace_by(block.children[-1])
    return True


# =================================================================
# Conditionals
# =================================================================

async def _adopt(expr: Node, index: int, session) -> bool:
    """Replaces expr by its child at index, then reduces that child."""
    chosen = expr.children[index]
    expr.replace_by(chosen)
    await session.reduce(chosen)
    return True


async def _if(expr: Node, session, cond_index: int, body_index: int) -> bool:
    condition = await session.reduce_and_get(expr.children[cond_index], cond_index)

    match condition.tag:
        case "Logic.True":
            return await _adopt(expr, body_index, session)
        case "Logic.False":
            expr.replace_by(null())
            return True
    raise session.fail(condition, NOT_BOOLEAN)


async def if_reducer(expr: Node, session) -> bool:
    return await _if(expr, session, 0, 1)


async def inverted_if_reducer(expr: Node, session) -> bool:
    return await _if(expr, session, 1, 0)


async def if_else_reducer(expr: Node, session) -> bool:
    condition = await session.reduce_and_get(expr.children[0], 0)

    match condition.tag:
        case "Logic.True":
            return await _adopt(expr, 1, session)
        case "Logic.False":
            return await _adopt(expr, 2, session)
    raise session.fail(condition, NOT_BOOLEAN)


# =================================================================
# For loops
# =================================================================

def _loop_symbol(loop: Node, session) -> Node:
    symbol = loop.children[1]
    if symbol.tag != SYMBOL:
        raise session.fail(symbol, "Expression must be a symbol")
    return symbol


def _bind_loop_variable(loop: Node, symbol: Node) -> ScopeEntry:
    loop.create_scope()
    entry = ScopeEntry()
    loop.put_into_scope(symbol.get("Name"), entry, False)
    return entry


async def _iterate(loop: Node, body: Node, session):
    loop.set_child(0, body.clone())
    await session.reduce(loop.children[0])


async def for_times_reducer(loop: Node, session) -> bool:
    count = await session.reduce_and_get(loop.children[1], 1)

    n = get_native_integer(count)
    if n is None or n < 0:
        raise session.fail(count, "Invalid number")

    body = loop.children[0]
    for _ in range(n):
        await _iterate(loop, body, session)

    # a counted loop never yields a value
    loop.replace_by(null())
    return True


async def for_from_to_reducer(loop: Node, session) -> bool:
    n = len(loop.children)
    symbol = _loop_symbol(loop, session)

    # bounds and step, left to right; body and symbol stay unreduced
    for i in range(2, n):
        await session.reduce(loop.children[i])

    body = loop.children[0]

    bounds = []
    for i in range(2, n):
        child = loop.children[i]
        if not is_internal_number(child):
            raise session.fail(child, "Expression must be numeric")
        bounds.append(child.get("Value"))

    current, to = bounds[0], bounds[1]
    step = bounds[2] if n == 5 else INTEGER_ONE
    negative = is_negative(step)

    entry = _bind_loop_variable(loop, symbol)
    passes = 0

    while True:
        c = comparison(current, to)
        if (negative and c < 0) or (not negative and c > 0):
            break
        # a zero step never reaches the bound
        session.check_iterations(loop, passes)

        entry.set_value(create_internal_number(current))
        await _iterate(loop, body, session)
        passes += 1

        current = addition(current, step)

    # last reduced body, or the untouched template when no iteration ran
    loop.replace_by(loop.children[0])
    return True


async def for_in_reducer(loop: Node, session) -> bool:
    symbol = _loop_symbol(loop, session)

    collection = await session.reduce_and_get(loop.children[2], 2)
    if collection.tag != LIST:
        raise session.fail(collection, "Expression must be a list")

    body = loop.children[0]
    entry = _bind_loop_variable(loop, symbol)

    for element in list(collection.children):
        entry.set_value(element.clone())
        await _iterate(loop, body, session)

    # an empty list leaves the untouched template in the body slot
    loop.replace_by(loop.children[0])
    return True


async def cycle_reducer(cycle: Node, session) -> bool:
    """Selects the loop rule by the number of children."""
    match len(cycle.children):
        case 2:
            return await for_times_reducer(cycle, session)
        case 3:
            return await for_in_reducer(cycle, session)
        case _:
            # 4 or 5, the registered arity admits nothing else
            return await for_from_to_reducer(cycle, session)


# =================================================================
# While / Until
# =================================================================

async def while_reducer(loop: Node, session) -> bool:
    original = loop.clone()
    result = None
    passes = 0

    while True:
        await session.reduce(loop.children[0])
        condition = loop.children[0]

        if condition.tag == TRUE:
            await session.reduce(loop.children[1])
            result = loop.children[1]

            passes += 1
            session.check_iterations(loop, passes)

            fresh = original.clone()
            loop.replace_by(fresh)
            loop = fresh
        elif condition.tag == FALSE:
            break
        else:
            raise session.fail(condition, "It is not a boolean expression")

    loop.replace_by(result if result is not None else null())
    return True


async def until_reducer(loop: Node, session) -> bool:
    original = loop.clone()
    passes = 0

    while True:
        await session.reduce(loop.children[0])
        await session.reduce(loop.children[1])
        condition = loop.children[1]

        if condition.tag == TRUE:
            break
        elif condition.tag == FALSE:
            passes += 1
            session.check_iterations(loop, passes)

            fresh = original.clone()
            loop.replace_by(fresh)
            loop = fresh
        else:
            raise session.fail(condition, "It is not a boolean expression")

    loop.replace_by(loop.children[0])
    return True


# =================================================================
# Switches
# =================================================================

async def comparative_switch_reducer(switch: Node, session) -> bool:
    comparand = await session.reduce_and_get(switch.children[0], 0)
    cases = (len(switch.children) - 1) // 2

    for c in range(cases):
        index = 2 * c + 1
        value = await session.reduce_and_get(switch.children[index], index)
        value_is_list = value.tag == LIST

        # the test takes the case value's slot
        test = Node(IN if value_is_list else COMPARE, [comparand.clone(), value])
        switch.set_child(index, test)

        outcome = await session.reduce_and_get(switch.children[index], index)
        if (value_is_list and outcome.tag == TRUE) or \
                (not value_is_list and outcome.tag == COMPARISON_EQUALS):
            return await _adopt(switch, index + 1, session)

    if len(switch.children) % 2 == 0:
        return await _adopt(switch, len(switch.children) - 1, session)

    switch.replace_by(null())
    return True


async def conditional_switch_reducer(switch: Node, session) -> bool:
    cases = len(switch.children) // 2

    for c in range(cases):
        condition = await session.reduce_and_get(switch.children[2 * c], 2 * c)
        if condition.tag == TRUE:
            return await _adopt(switch, 2 * c + 1, session)

    if len(switch.children) % 2 != 0:
        return await _adopt(switch, len(switch.children) - 1, session)

    switch.replace_by(null())
    return True


def set_reducers(registry):
    registry.add_reducer(Construct.BLOCK, block_reducer, "Programming.blockReducer", arity=at_least(1))

    special = dict(pre_reduces_children=False)

    registry.add_reducer(Construct.IF, if_reducer, "Programming.ifReducer", arity=exactly(2), **special)
    registry.add_reducer(Construct.INVERTED_IF, inverted_if_reducer, "Programming.invertedIfReducer", arity=exactly(2), **special)
    registry.add_reducer(Construct.IF_ELSE, if_else_reducer, "Programming.ifElseReducer", arity=exactly(3), **special)
    registry.add_reducer(Construct.CONDITIONAL, if_else_reducer, "Programming.ifElseReducer", arity=exactly(3), **special)

    for tag in (Construct.FOR_TIMES, Construct.INVERTED_FOR_TIMES):
        registry.add_reducer(tag, for_times_reducer, "Programming.forTimesReducer", arity=exactly(2), **special)
    for tag in (Construct.FOR_FROM_TO, Construct.INVERTED_FOR_FROM_TO):
        registry.add_reducer(tag, for_from_to_reducer, "Programming.forFromToReducer", arity=between(4, 5), **special)
    for tag in (Construct.FOR_IN, Construct.INVERTED_FOR_IN):
        registry.add_reducer(tag, for_in_reducer, "Programming.forInReducer", arity=exactly(3), **special)

    for tag in (Construct.CYCLE, Construct.CYCLE_TIMES, Construct.CYCLE_FROM_TO, Construct.CYCLE_IN):
        registry.add_reducer(tag, cycle_reducer, "Programming.cycle", arity=between(2, 5), **special)

    registry.add_reducer(Construct.WHILE, while_reducer, "Programming.whileReducer", arity=exactly(2), **special)
    registry.add_reducer(Construct.UNTIL, until_reducer, "Programming.untilReducer", arity=exactly(2), **special)

    registry.add_reducer(Construct.COMPARATIVE_SWITCH, comparative_switch_reducer, "Programming.comparativeSwitch",
                         arity=at_least(3), **special)
    registry.add_reducer(Construct.CONDITIONAL_SWITCH, conditional_switch_reducer, "Programming.conditionalSwitch",
                         arity=at_least(2), **special)
