import asyncio
import sys
from pathlib import Path

from progtree.progtree_runtime import TreeRunner
from progtree.progtree_printer import Printer
from progtree.progtree_serialize import format_for_path


def _print_result(result, printer: Printer) -> int:
    # Print side effects (from `emit`)
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return 1
    if result.value is not None:
        print(printer.pformat(result.value))
    return 0


async def run_tree_file(file_path: str) -> int:
    """Reduce a tree document non-interactively and return the exit status."""
    runner = TreeRunner()
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    result = await runner.handle_document(source, fmt=format_for_path(file_path))
    return _print_result(result, Printer())


async def run_stdin() -> int:
    """Reduce one tree document read from standard input."""
    runner = TreeRunner()
    loop = asyncio.get_running_loop()
    source = await loop.run_in_executor(None, sys.stdin.read)
    result = await runner.handle_document(source)
    return _print_result(result, Printer())


async def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if args and not args[0].startswith("-"):
        return await run_tree_file(args[0])
    return await run_stdin()


def cli():
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nExiting.")


if __name__ == "__main__":
    cli()
