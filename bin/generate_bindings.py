#!/usr/bin/env python3
"""
Reflection-to-FFI Binding Generator

Reads the reflection schema named by uika.config.toml and generates:
  1. Python bindings (classes, structs, enums) over the flat function table
  2. Guest import manifest + host closures for the sandboxed call path
  3. C++ wrappers, UikaFuncIds.h, UikaFillFuncTable.cpp and module_deps.txt

Usage:
    python generate_bindings.py --config uika.config.toml
    python generate_bindings.py --config uika.config.toml --py-out out/py --cpp-out out/cpp --strict
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add parent directory to path so the uikagen package can be found
sys.path.insert(0, str(Path(__file__).parent.parent))

from uikagen import CodegenError, load_config, run_generate


def main(argv=None):
    start_time = time.perf_counter()

    parser = argparse.ArgumentParser(description="Generate bindings from the reflection schema")
    parser.add_argument("config_file", nargs="?", help="Path to uika.config.toml (positional)")
    parser.add_argument("--config", "-c", help="Path to uika.config.toml (alternative)")
    parser.add_argument("--py-out", default="", help="Python bindings output directory (overrides config)")
    parser.add_argument("--cpp-out", default="", help="C++ output directory (overrides config)")
    parser.add_argument("--strict", action="store_true", help="Fail when any schema member is skipped")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every skipped member")
    parser.add_argument("--quiet", "-q", action="store_true", help="Only log warnings and errors")
    args = parser.parse_args(argv)

    config_file = args.config_file or args.config
    if not config_file:
        parser.error("config file is required (positional or --config)")

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(Path(config_file))
        ctx = run_generate(
            config,
            py_out=Path(args.py_out) if args.py_out else None,
            cpp_out=Path(args.cpp_out) if args.cpp_out else None,
            strict=True if args.strict else None,
        )
    except CodegenError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(f"Generated: {len(ctx.func_table)} functions, {len(ctx.skipped)} members skipped")
    elapsed = time.perf_counter() - start_time
    print(f"Generation completed in {elapsed*1000:.2f} ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
