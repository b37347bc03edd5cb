#!/usr/bin/env python3
"""
Rule Evaluator - Runs the configured style rules over a markdown document.

This module is the host pipeline for the rules in style_rules: it parses a
document once, hands every enabled rule a fresh diagnostic sink and collects
the structured diagnostics they emit.

Key Features:
- Settings mapping of rule name -> preferred value (False disables a rule)
- Rules run in a fixed order: blockquote-indentation, maximum-line-length
- Diagnostics carry file, line, column, rule name and severity
- Accepts a pre-built document tree for callers with their own parser
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from document_tree import Node, Point
from markdown_tree import parse_document
from style_rules import RULES


@dataclass
class Diagnostic:
    """
    Structured style diagnostic.

    Attributes:
        file_path: Path to the document the diagnostic belongs to
        line: Line number (1-based)
        column: Column number (1-based)
        rule: Name of the rule that emitted the diagnostic
        message: Human readable description of the deviation
        severity: Severity level ("warn" or "error")
    """
    file_path: str
    line: int
    column: int
    rule: str
    message: str
    severity: str = "warn"

    def format_error(self) -> str:
        """
        Format diagnostic for console output.

        Returns:
            Formatted diagnostic string

        Example:
            [WARN] doc/guide.md:12:81: maximum-line-length
              Detail: Line must be at most 80 characters
        """
        severity_tag = f"[{self.severity.upper()}]"
        header = f"{severity_tag} {self.file_path}:{self.line}:{self.column}: {self.rule}"
        return f"{header}\n  Detail: {self.message}"


class DiagnosticSink:
    """
    Collects the warnings one rule emits for one document.

    Attributes:
        file_path: Document the diagnostics belong to
        rule: Rule name stamped on every diagnostic
        diagnostics: Diagnostics in emission order
    """

    def __init__(self, file_path: str, rule: str):
        self.file_path = file_path
        self.rule = rule
        self.diagnostics: List[Diagnostic] = []

    def warn(self, message: str, position: Point) -> None:
        """Record a diagnostic at `position`."""
        self.diagnostics.append(Diagnostic(
            file_path=self.file_path,
            line=position.line,
            column=position.column,
            rule=self.rule,
            message=message,
        ))


class RuleEvaluator:
    """
    Style rule evaluation engine.

    Evaluates documents against the rules named in a settings mapping.
    """

    def __init__(self, settings: Dict[str, Any]):
        """
        Initialize rule evaluator with settings.

        Args:
            settings: Rule name -> preferred value; missing or False disables a rule
        """
        self.settings = settings
        self.diagnostics: List[Diagnostic] = []

    def enabled_rules(self) -> List[str]:
        """Names of the rules that will run, in evaluation order."""
        return [
            name for name in RULES
            if name in self.settings and self.settings[name] is not False
        ]

    def evaluate(self, document_path: Path, document_content: str, tree: Optional[Node] = None) -> List[Diagnostic]:
        """
        Evaluate document against all enabled rules.

        Args:
            document_path: Path to the document being checked
            document_content: Content of the document
            tree: Optional pre-built document tree (parsed from content otherwise)

        Returns:
            List of Diagnostic objects (empty if the document passes)

        Raises:
            MalformedPositionError: If the tree carries invalid position data
        """
        self.diagnostics = []
        rules = self.enabled_rules()

        if not rules:
            return self.diagnostics

        if tree is None:
            tree = parse_document(document_content)

        for name in rules:
            sink = DiagnosticSink(str(document_path), name)
            RULES[name](tree, document_content, self.settings[name], sink)
            self.diagnostics.extend(sink.diagnostics)

        return self.diagnostics


def validate_document(document_path: Path, settings: Dict[str, Any]) -> List[Diagnostic]:
    """
    Convenience function to check a document against style settings.

    Args:
        document_path: Path to the document to check
        settings: Rule settings

    Returns:
        List of Diagnostic objects (empty if the document passes)
    """
    content = document_path.read_text(encoding='utf-8')
    evaluator = RuleEvaluator(settings)
    return evaluator.evaluate(document_path, content)


if __name__ == '__main__':
    # Example usage
    import sys
    import json

    if len(sys.argv) < 3:
        print("Usage: rule_evaluator.py <document_path> <settings_json>")
        print("\nExample settings JSON:")
        print(json.dumps({
            "schema_version": 1,
            "blockquote-indentation": "consistent",
            "maximum-line-length": 80
        }, indent=2))
        sys.exit(1)

    doc_path = Path(sys.argv[1])

    try:
        doc_settings = json.loads(sys.argv[2])
    except json.JSONDecodeError as e:
        print(f"Error parsing settings JSON: {e}")
        sys.exit(1)

    found = validate_document(doc_path, doc_settings)

    if found:
        print(f"Style check failed with {len(found)} warning(s):\n")
        for diagnostic in found:
            print(diagnostic.format_error())
            print()
        sys.exit(1)
    else:
        print(f"Style check passed: {doc_path}")
        sys.exit(0)
