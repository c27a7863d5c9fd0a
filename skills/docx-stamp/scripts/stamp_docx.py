#!/usr/bin/env python3
"""
ABOUTME: Command line front end for docx_stamp
ABOUTME: Stamps a JSON data context into a .docx template and saves the result
"""

import argparse
import json
import sys
from pathlib import Path

from docx_stamp import DocxStamper, StamperConfiguration, load_config
from docx_stamp.common import format_text_preview


def build_config(args) -> StamperConfiguration:
    """Merge --config file options with command line overrides."""
    config = load_config(args.config) if args.config else StamperConfiguration()

    if args.no_fail_on_unresolved:
        config.fail_on_unresolved_expression = False
    if args.leave_empty:
        config.leave_empty_on_expression_error = True
        config.replace_unresolved_expressions = False
    if args.unresolved_default is not None:
        config.replace_unresolved_expressions = True
        config.leave_empty_on_expression_error = False
        config.unresolved_expressions_default = args.unresolved_default
    if args.null_default is not None:
        config.replace_null_values = True
        config.null_values_default = args.null_default
    if args.line_break is not None:
        config.line_break_placeholder = args.line_break
    if args.verbose:
        config.verbose = True

    config.validate()
    return config


def load_context(file_path: str):
    with open(file_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Stamp a JSON data context into a Word template"
    )
    parser.add_argument('template', help='Template file (.docx)')
    parser.add_argument('context_json', help='Data context (JSON file)')
    parser.add_argument('-o', '--output',
                        help='Output file path (default: <template>_stamped.docx)')
    parser.add_argument('--config', help='JSON file with stamper options')
    parser.add_argument('--no-fail-on-unresolved', action='store_true',
                        help='Record unresolved expressions instead of aborting')
    unresolved = parser.add_mutually_exclusive_group()
    unresolved.add_argument('--leave-empty', action='store_true',
                            help='Remove unresolved value expressions')
    unresolved.add_argument('--unresolved-default', metavar='TEXT',
                            help='Replace unresolved value expressions with TEXT')
    parser.add_argument('--null-default', metavar='TEXT',
                        help='Render None values (and None collections) as TEXT')
    parser.add_argument('--line-break', metavar='PLACEHOLDER',
                        help='Replace PLACEHOLDER with a line break')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')

    args = parser.parse_args(argv)

    template_path = Path(args.template)
    output_path = Path(args.output) if args.output else \
        template_path.with_name(f"{template_path.stem}_stamped.docx")

    try:
        config = build_config(args)
        context = load_context(args.context_json)

        print(f"Template: {template_path}")
        print(f"Output to: {output_path}")
        if args.verbose:
            print("-" * 50)

        stamper = DocxStamper(config)
        stamper.stamp(template_path, context, output_path)

        if stamper.errors:
            print("\nUnresolved expressions:")
            for error in stamper.errors:
                print(f"  - {format_text_preview(error.expression, 60)}: {error.reason}")

        print("-" * 50)
        print(f"Completed: {len(stamper.errors)} unresolved expression(s)")
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
