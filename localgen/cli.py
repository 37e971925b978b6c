"""localgen CLI - run the declaration pass over a serialized module."""

from __future__ import annotations

import sys

from .codemodel import Module
from .errors import LocalsError, UnsupportedConstructError
from .middleend.declarations import Placement, plan_declarations
from .middleend.local_vars import generate_module_locals, module_scopes
from .middleend.writes import index_body
from .serialize import LoadError, from_json, serialize, to_json, write_index_to_dict

PHASES: list[str] = ["load", "writes", "plan", "rewrite"]

USAGE: str = """\
localgen [OPTIONS] [INPUT] [-o OUTPUT]

Read a serialized module (JSON) and declare its undeclared locals.

Options:
  --global NAME       Treat NAME as module-level (repeatable)
  --stop-at PHASE     Stop after phase: load, writes, plan, rewrite
  -o, --output FILE   Write output to FILE instead of stdout
  --help              Show this help message
"""


class UsageError(Exception):
    """Bad command line."""


def parse_args(args: list[str]) -> tuple[list[str], str, str | None, str | None]:
    """Returns (globals, stop_at, input_file, output_file)."""
    globals_list: list[str] = []
    stop_at = "rewrite"
    input_file: str | None = None
    output_file: str | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in ("--global", "--stop-at", "-o", "--output"):
            if i + 1 >= len(args):
                raise UsageError(arg + " requires an argument")
            value = args[i + 1]
            if arg == "--global":
                globals_list.append(value)
            elif arg == "--stop-at":
                stop_at = value
            else:
                output_file = value
            i += 2
        elif arg.startswith("-") and arg != "-":
            raise UsageError("unknown flag '" + arg + "'")
        elif input_file is None:
            input_file = arg
            i += 1
        else:
            raise UsageError("unexpected argument '" + arg + "'")
    if stop_at not in PHASES:
        raise UsageError("unknown phase '" + stop_at + "'")
    return (globals_list, stop_at, input_file, output_file)


def read_source(input_file: str | None) -> str:
    """Read input from a file, or stdin when input_file is None or '-'."""
    if input_file is None or input_file == "-":
        raw = sys.stdin.buffer.read()
    else:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            raise LoadError("cannot open '" + input_file + "'")
    try:
        return raw.decode("utf-8")
    except ValueError:
        raise LoadError("invalid utf-8 in input")


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w") as f:
                f.write(output + "\n")
        except OSError:
            print("localgen: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    print(output)
    return 0


class _Failed(Exception):
    """Errors were already printed."""


def _print_errors(errors: list[LocalsError]) -> None:
    for e in errors:
        print(str(e), file=sys.stderr)


def _analyze(module: Module, globals_list: list[str], stop_at: str) -> object:
    """Index (and plan) every function without rewriting anything."""
    names = set(module.globals) | set(globals_list)
    result: dict[str, object] = {}
    errors: list[LocalsError] = []
    for qualified, func in module_scopes(module):
        try:
            index = index_body(func.body, names)
        except UnsupportedConstructError as e:
            errors.append(LocalsError(e.loc.line, e.loc.col, qualified, e.msg))
            continue
        if stop_at == "writes":
            result[qualified] = write_index_to_dict(index)
        else:
            params = {p.name for p in func.params}
            plan: list[Placement] = plan_declarations(index, params)
            result[qualified] = serialize(plan)
    if errors:
        _print_errors(errors)
        raise _Failed()
    return result


def run(source: str, globals_list: list[str], stop_at: str) -> tuple[int, str]:
    """Run the pipeline on serialized input. Returns (exit_code, output)."""
    try:
        module = from_json(source)
    except (LoadError, ValueError, TypeError) as e:
        print("localgen: " + str(e), file=sys.stderr)
        return (1, "")
    try:
        return _run_phases(module, globals_list, stop_at)
    except RecursionError:
        print("localgen: input nested too deeply", file=sys.stderr)
        return (1, "")


def _run_phases(
    module: Module, globals_list: list[str], stop_at: str
) -> tuple[int, str]:
    if stop_at == "load":
        return (0, to_json(module))
    if stop_at in ("writes", "plan"):
        try:
            return (0, to_json(_analyze(module, globals_list, stop_at)))
        except _Failed:
            return (1, "")
    errors = generate_module_locals(module, set(globals_list))
    if errors:
        _print_errors(errors)
        return (1, "")
    return (0, to_json(module))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = argv if argv is not None else sys.argv[1:]
    if "--help" in args or "-h" in args:
        print(USAGE, end="")
        return 0
    try:
        globals_list, stop_at, input_file, output_file = parse_args(args)
    except UsageError as e:
        print("localgen: " + str(e), file=sys.stderr)
        return 2
    try:
        source = read_source(input_file)
    except LoadError as e:
        print("localgen: " + str(e), file=sys.stderr)
        return 1
    if len(source.strip()) == 0:
        print("localgen: no input provided", file=sys.stderr)
        return 2
    exit_code, output = run(source, globals_list, stop_at)
    if exit_code != 0:
        return exit_code
    return write_output(output, output_file)


if __name__ == "__main__":
    sys.exit(main())
