#!/usr/bin/env python3
"""Markdown style checking tool."""

import argparse
import json
import sys
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from jsonschema import Draft7Validator
from rule_evaluator import RuleEvaluator


CONFIG_FILENAMES = ('.mdstyle.yml', '.mdstyle.yaml')

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"

DEFAULT_SETTINGS: Dict[str, Any] = {
    'schema_version': 1,
    'blockquote-indentation': 'consistent',
    'maximum-line-length': 80,
}

# Global config cache, keyed by resolved path
_config_cache: Dict[Path, Dict[str, Any]] = {}


def discover_docs(root: Path) -> List[Path]:
    """Find all markdown files under root, skipping hidden directories."""
    docs = []
    for doc in root.glob('**/*.md'):
        rel_path = doc.relative_to(root)

        if any(part.startswith('.') for part in rel_path.parts[:-1]):
            continue

        if doc.is_file():
            docs.append(doc)

    return sorted(docs)


def collect_targets(paths: List[str]) -> List[Path]:
    """Expand command-line paths into the markdown files to check.

    Args:
        paths: Files and directories given on the command line

    Returns:
        Files to check, in command-line order (directories expanded and sorted)

    Raises:
        ValueError: If a path does not exist
    """
    targets = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            targets.extend(discover_docs(path))
        elif path.is_file():
            targets.append(path)
        else:
            raise ValueError(f"No such file or directory: {raw}")
    return targets


def find_config(start: Path) -> Optional[Path]:
    """Look for a config file in start and its parent directories."""
    start = start.resolve()
    for directory in (start, *start.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_config(config_path: Path, use_cache: bool = True) -> Dict[str, Any]:
    """Load rule settings from a YAML config file with caching.

    Args:
        config_path: Path to the YAML config file
        use_cache: Whether to use cached configs (default: True)

    Returns:
        Dictionary of settings from the file (not merged with defaults)

    Raises:
        ValueError: If the file cannot be read, is not valid YAML, or is not a mapping
    """
    key = config_path.resolve()

    if use_cache and key in _config_cache:
        return _config_cache[key]

    try:
        content = config_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ValueError(f"Cannot read config {config_path}: {e}")

    try:
        settings = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML in {config_path}: {e}")

    if settings is None:
        settings = {}

    if not isinstance(settings, dict):
        raise ValueError(f"Config {config_path} must be a mapping of rule settings")

    if use_cache:
        _config_cache[key] = settings

    return settings


def resolve_settings(config_path: Optional[Path]) -> Dict[str, Any]:
    """Merge the config file (if any) over the default settings."""
    settings = dict(DEFAULT_SETTINGS)
    if config_path is not None:
        settings.update(load_config(config_path))
    return settings


def _config_from_args(args) -> Optional[Path]:
    if getattr(args, 'config', None):
        return Path(args.config)
    return find_config(Path.cwd())


def lint(args) -> int:
    """Check markdown documents against the configured style rules.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 on success, 1 on warnings or errors
    """
    config_path = _config_from_args(args)

    try:
        settings = resolve_settings(config_path)
    except ValueError as e:
        print(f"[ERROR] Failed to load config: {e}", file=sys.stderr)
        return 1

    # Show effective rules if debug flag is set
    if getattr(args, 'show_effective_rules', False):
        print("=== Effective Style Rules ===")
        print(f"Config: {config_path if config_path else '(defaults)'}")
        print("\nResolved Settings:")
        print(yaml.dump(settings, default_flow_style=False, sort_keys=False))
        print("=" * 60)
        return 0

    try:
        docs = collect_targets(args.paths or ['.'])
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    errors = []
    evaluator = RuleEvaluator(settings)

    for doc in docs:
        content = doc.read_text(encoding='utf-8')
        for diagnostic in evaluator.evaluate(doc, content):
            errors.append(diagnostic.format_error())

    if errors:
        for error in errors:
            print(error, file=sys.stderr)
        print(f"Style check failed: {len(errors)} warning(s) in {len(docs)} documents")
        return 1

    print(f"Style check passed: {len(docs)} documents")
    return 0


def check_config(args) -> int:
    """Validate the config file against the configuration schema.

    Args:
        args: Command-line arguments from argparse

    Returns:
        Exit code: 0 if the config is valid (or absent), 1 otherwise
    """
    config_path = _config_from_args(args)

    if config_path is None:
        print("No config file found, using defaults")
        return 0

    try:
        settings = load_config(config_path, use_cache=False)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    with open(SCHEMA_PATH, encoding='utf-8') as f:
        schema = json.load(f)

    validator = Draft7Validator(schema)
    problems = sorted(validator.iter_errors(settings), key=lambda e: list(e.path))

    if problems:
        for problem in problems:
            location = '.'.join(str(part) for part in problem.path) or '(root)'
            print(f"[ERROR] {config_path}: {location}: {problem.message}", file=sys.stderr)
        return 1

    print(f"Config validation passed: {config_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the style checking tool."""
    parser = argparse.ArgumentParser(
        description="Check markdown documents for style problems",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s lint
  %(prog)s lint README.md doc/ --config .mdstyle.yml
  %(prog)s check-config
        """
    )

    subparsers = parser.add_subparsers(
        dest='command',
        required=True,
        help='Command to run'
    )

    # lint subcommand
    parser_lint = subparsers.add_parser(
        'lint',
        help='Check markdown files against the style rules'
    )
    parser_lint.add_argument(
        'paths',
        nargs='*',
        help='Markdown files or directories (default: current directory)'
    )
    parser_lint.add_argument(
        '--config',
        help='Path to a YAML config file (default: nearest .mdstyle.yml)'
    )
    parser_lint.add_argument(
        '--show-effective-rules',
        action='store_true',
        help='Show resolved rule settings and exit (debug mode)'
    )

    # check-config subcommand
    parser_check_config = subparsers.add_parser(
        'check-config',
        help='Validate the config file against the configuration schema'
    )
    parser_check_config.add_argument(
        '--config',
        help='Path to a YAML config file (default: nearest .mdstyle.yml)'
    )

    # Parse arguments
    args = parser.parse_args(argv)

    # Dispatch to handler functions
    handlers = {
        'lint': lint,
        'check-config': check_config,
    }

    handler = handlers.get(args.command)
    if handler is None:
        print(f"Error: Unknown command '{args.command}'", file=sys.stderr)
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
