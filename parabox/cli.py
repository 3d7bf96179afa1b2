"""
Parabox CLI - Command-line interface for the engine.

Usage:
    parabox validate <definition.json>               Validate a puzzle definition
    parabox dump <definition.json>                   Print the built world
    parabox play <definition.json> --moves "RRUz"    Apply a command sequence
"""

import argparse
import logging
import os
import sys

from pydantic import ValidationError


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Parabox - Recursive box-pushing puzzle engine",
        prog="parabox",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("PARABOX_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $PARABOX_LOG_LEVEL or WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a puzzle definition")
    validate_parser.add_argument("definition_file", help="Path to definition JSON")

    # Dump command
    dump_parser = subparsers.add_parser("dump", help="Print every board and entity")
    dump_parser.add_argument("definition_file", help="Path to definition JSON")

    # Play command
    play_parser = subparsers.add_parser("play", help="Apply a sequence of commands")
    play_parser.add_argument("definition_file", help="Path to definition JSON")
    play_parser.add_argument(
        "--moves", "-m", default="",
        help='Commands, e.g. "RRDL z r" or "right,right,undo"',
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "validate":
        cmd_validate(args)
    elif args.command == "dump":
        cmd_dump(args)
    elif args.command == "play":
        cmd_play(args)
    else:
        parser.print_help()
        sys.exit(1)


def load_definition(path):
    """Read a definition file, exiting with a message on failure."""
    from .puzzle_schema import PuzzleDefinition

    try:
        return PuzzleDefinition.from_json_file(path)
    except FileNotFoundError:
        print(f"Error: File not found: {path}")
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: {path} is not a puzzle definition:\n{e}")
        sys.exit(1)


def build_or_exit(definition):
    from .puzzle_schema import PuzzleValidationError, build_world

    try:
        return build_world(definition)
    except PuzzleValidationError as e:
        print("Errors:")
        for error in e.errors:
            print(f"  - {error}")
        sys.exit(1)


def cmd_validate(args):
    """Validate a puzzle definition."""
    from .puzzle_schema import validate_definition

    print(f"Validating: {args.definition_file}")
    definition = load_definition(args.definition_file)
    result = validate_definition(definition)

    if result.warnings:
        print("\nWarnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("\nErrors:")
        for e in result.errors:
            print(f"  - {e}")
        sys.exit(1)

    print(f"OK: '{definition.name}' ({len(definition.boards)} board(s), {len(definition.entities)} entit(ies))")


def cmd_dump(args):
    """Print the initial world."""
    definition = load_definition(args.definition_file)
    world = build_or_exit(definition)
    print(world.debug_dump())


def cmd_play(args):
    """Apply a command sequence and report each outcome."""
    from .engine_core import Command, History, InvalidCommand, Reducer

    definition = load_definition(args.definition_file)
    world = build_or_exit(definition)
    history = History.start(world)
    reducer = Reducer(history=history)

    try:
        commands = Command.parse_sequence(args.moves)
    except InvalidCommand as e:
        print(f"Error: {e}")
        sys.exit(1)

    for i, command in enumerate(commands, 1):
        result = reducer.apply(world, command)
        line = f"{i:>3}. {command}: {result.outcome.value}"
        if result.error:
            line += f" ({result.error_code}: {result.error})"
        print(line)
        if "dump" in result.details:
            print(result.details["dump"])

    won = reducer.evaluator.is_won(world)
    print(f"\nMoves: {history.move_count}")
    print("Solved!" if won else "Not solved")
    if not won:
        sys.exit(2)


if __name__ == "__main__":
    main()
