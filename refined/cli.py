"""refined CLI: command-line interface for the contract checker.

Commands:
  refined prove <expr.json>          Verify every contract in a typed expression
  refined signatures                 List the core signature table
  refined --version
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from refined import __version__
from refined.config import load_config
from refined.core import BUILTIN_SIGNATURES, UNINTERPRETED_SIGNATURES, PRIMITIVE_SIGNATURES
from refined.errors import VerificationError
from refined.loader import load_env, load_expr
from refined.prove import verify


def cmd_prove(args: argparse.Namespace) -> int:
    """Verify one typed expression read from a JSON file."""
    if not os.path.exists(args.file):
        print(json.dumps({"error": f"File not found: {args.file}"}))
        return 1

    try:
        config = load_config(args.config)
        if args.transport:
            config.transport = args.transport
        if args.show_transcript:
            config.log_solver_input = True
        _configure_logging(config.log_level, args.verbose)

        expr = load_expr(args.file)
        env = load_env(args.env) if args.env else None
    except VerificationError as e:
        print(e.to_json())
        return 1

    result = verify(expr, env=env, config=config)
    print(json.dumps(result.to_dict(with_transcript=args.show_transcript), indent=2))
    return 0 if result.verified else 1


def cmd_signatures(args: argparse.Namespace) -> int:
    """Print the builtin, uninterpreted and primitive signatures."""
    tables = {
        "builtins": BUILTIN_SIGNATURES,
        "uninterpreted": UNINTERPRETED_SIGNATURES,
        "primitives": PRIMITIVE_SIGNATURES,
    }
    print(json.dumps(
        {kind: {name: str(sig) for name, sig in table.items()} for kind, table in tables.items()},
        indent=2,
    ))
    return 0


def _configure_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refined",
        description="Static verification of refinement contracts with an SMT solver",
    )
    parser.add_argument("--version", action="version", version=f"refined {__version__}")
    sub = parser.add_subparsers(dest="command")

    prove_p = sub.add_parser("prove", help="Verify a typed expression (JSON)")
    prove_p.add_argument("file", help="Typed expression in JSON form")
    prove_p.add_argument("--env", help="Extra signatures (JSON object of name -> slot)")
    prove_p.add_argument("--config", help="Path to a .refinedrc.json")
    prove_p.add_argument("--transport", choices=["process", "api"],
                         help="Talk to an external z3 process or use the in-process bindings")
    prove_p.add_argument("--verbose", "-v", action="store_true", help="Log every solver command")
    prove_p.add_argument("--show-transcript", action="store_true",
                         help="Include the solver transcript in the output")
    prove_p.set_defaults(func=cmd_prove)

    sig_p = sub.add_parser("signatures", help="List the core signature table")
    sig_p.set_defaults(func=cmd_signatures)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
