import argparse
import json
import logging
import sys
from pathlib import Path

from .core.config import Config, VerbosityLevel
from .core.errors import SharingAnalysisError
from .analyzers.symbols import load_resolver
from .analyzers.trace_reader import read_events
from .analyzers.trace_replayer import TraceReplayer


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser."""

    parser = argparse.ArgumentParser(
        prog='mtrace-sharing',
        description='Detect physical memory sharing between scopes that declared no logical sharing',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mtrace-sharing trace.jsonl                       # Summary and unexpected sharing
  mtrace-sharing trace.jsonl --symbols syms.json   # Annotate addresses and PCs
  mtrace-sharing trace.jsonl --abstract-scopes     # Include raw per-scope sets
  mtrace-sharing trace.jsonl -o report.json        # Write report to a file
        """
    )

    parser.add_argument(
        'trace',
        type=str,
        help='JSON-lines trace file to analyze'
    )

    # Output options
    output_group = parser.add_argument_group('Output Options')
    output_group.add_argument(
        '-o', '--output',
        type=str,
        help='Output file (default: stdout)'
    )
    output_group.add_argument(
        '--abstract-scopes',
        action='store_true',
        help='Emit the raw abstract and concrete sets of every scope'
    )
    output_group.add_argument(
        '--no-unexpected',
        action='store_true',
        help='Omit the unexpected-sharing section'
    )
    output_group.add_argument(
        '--indent',
        type=int,
        default=2,
        help='JSON indentation (default: 2)'
    )

    # Symbol options
    symbol_group = parser.add_argument_group('Symbol Options')
    symbol_group.add_argument(
        '--symbols',
        type=str,
        metavar='FILE',
        help='JSON symbol file used to label addresses and program counters'
    )

    # Verbosity options
    verbosity_group = parser.add_argument_group('Verbosity Options')
    verbosity_group.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity level (use -v, -vv for more detail)'
    )
    verbosity_group.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only report errors'
    )
    verbosity_group.add_argument(
        '--version',
        action='version',
        version='%(prog)s 0.1.0'
    )

    return parser


def validate_arguments(args: argparse.Namespace) -> bool:
    """Validate command-line arguments and check for conflicts."""

    trace_path = Path(args.trace)
    if not trace_path.exists():
        print(f"Error: Trace file '{args.trace}' not found.", file=sys.stderr)
        return False

    if not trace_path.is_file():
        print(f"Error: '{args.trace}' is not a regular file.", file=sys.stderr)
        return False

    if args.symbols and not Path(args.symbols).is_file():
        print(f"Error: Symbol file '{args.symbols}' not found.", file=sys.stderr)
        return False

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            print(f"Error: Cannot write to output directory '{output_path.parent}'.", file=sys.stderr)
            return False

    if args.quiet and args.verbose > 0:
        print("Error: Cannot use --quiet and --verbose together.", file=sys.stderr)
        return False

    if args.indent < 0:
        print("Error: Indentation must be non-negative.", file=sys.stderr)
        return False

    return True


def create_config_from_args(args: argparse.Namespace) -> Config:
    """Create a configuration object from parsed command-line arguments."""

    config = Config()
    config.update_from_args({
        'input_file': args.trace,
        'output_file': args.output,
        'symbol_file': args.symbols,
        'abstract_scopes': args.abstract_scopes,
        'no_unexpected': args.no_unexpected,
        'indent': args.indent,
        'verbose': args.verbose,
        'quiet': args.quiet,
    })
    return config


def configure_logging(verbosity: VerbosityLevel) -> None:
    logging.basicConfig(
        level=verbosity.log_level,
        format='%(levelname)s: %(message)s',
        stream=sys.stderr,
    )


def run(config: Config) -> dict:
    """Run the analysis described by ``config`` and return the report."""
    resolver = load_resolver(config.symbol_file)
    replayer = TraceReplayer(config, resolver)
    with open(config.input_file, 'r', encoding='utf-8') as f:
        replayer.replay(read_events(f))
    return replayer.report()


def write_report(report: dict, config: Config) -> None:
    indent = config.report.indent or None
    if config.output_file:
        with open(config.output_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=indent)
            f.write('\n')
    else:
        json.dump(report, sys.stdout, indent=indent)
        sys.stdout.write('\n')


def main(argv=None) -> int:
    """Main entry point for the CLI application."""

    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not validate_arguments(args):
        return 1

    config = create_config_from_args(args)
    configure_logging(config.verbosity)

    try:
        report = run(config)
    except SharingAnalysisError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading trace '{config.input_file}': {e}", file=sys.stderr)
        return 1

    write_report(report, config)
    return 0


if __name__ == '__main__':
    sys.exit(main())
