"""
Clide: Agent Task Dashboard
Command line entry point.
"""

import sys
import argparse
from pathlib import Path
from colorama import init, Fore, Style

from clide.config import load_dashboard_config
from clide.cli_tools import list_tasks, show_spec, render_file, watch_logs
from clide.logger import ClideLogger
from clide.retry import ReconnectPolicy
from clide.store import TaskStore
from clide.web import ClideWebServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clide",
        description="Clide: Agent Task Dashboard - Supervise coding agents and follow their logs live",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  clide serve                              # Start the Kanban dashboard
  clide tasks                              # List tasks by status
  clide spec 11                            # Show a task specification
  clide render logs/11.log                 # Render a log file
  clide watch 11                           # Follow a task's logs live
        """
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        help='Path to configuration file (default: clide.yaml if present)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        help='Path to log file'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Start Kanban board web interface')
    serve_parser.add_argument(
        '--host',
        type=str,
        help='Host to bind to (default: from config, 127.0.0.1)'
    )
    serve_parser.add_argument(
        '--port',
        type=int,
        help='Port to bind to (default: from config, 5000)'
    )
    serve_parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    # Tasks command
    subparsers.add_parser('tasks', help='List tasks grouped by status')

    # Spec command
    spec_parser = subparsers.add_parser('spec', help='Show a task specification')
    spec_parser.add_argument(
        'task_id',
        type=str,
        help='Task identifier'
    )

    # Render command
    render_parser = subparsers.add_parser('render', help='Render a log file')
    render_parser.add_argument(
        'file',
        type=str,
        help='Path to log file'
    )
    render_parser.add_argument(
        '--raw',
        action='store_true',
        help='Show structured logs verbatim'
    )
    render_parser.add_argument(
        '--expand',
        action='store_true',
        help='Show tool call and result bodies'
    )

    # Watch command
    watch_parser = subparsers.add_parser('watch', help="Follow a task's logs from a running server")
    watch_parser.add_argument(
        'task_id',
        type=str,
        help='Task identifier'
    )
    watch_parser.add_argument(
        '--url',
        type=str,
        help='Dashboard server URL (default: from config)'
    )
    watch_parser.add_argument(
        '--raw',
        action='store_true',
        help='Show structured logs verbatim'
    )

    return parser


def main(argv=None):
    """Main CLI entry point."""
    init()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = load_dashboard_config(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        print(f"{Fore.RED}❌ Error loading configuration: {e}{Style.RESET_ALL}", file=sys.stderr)
        sys.exit(1)

    log_file = Path(args.log_file) if args.log_file else None
    logger = ClideLogger(verbose=args.verbose, log_file=log_file)
    store = TaskStore.from_config(config)

    if args.command == 'serve':
        if args.host:
            config["server"]["host"] = args.host
        if args.port:
            config["server"]["port"] = args.port
        server = ClideWebServer(config=config, store=store, logger=logger)
        server.run(debug=args.debug)
    elif args.command == 'tasks':
        list_tasks(store)
    elif args.command == 'spec':
        show_spec(store, args.task_id)
    elif args.command == 'render':
        success = render_file(Path(args.file), raw=args.raw, expanded=args.expand)
        sys.exit(0 if success else 1)
    elif args.command == 'watch':
        server = config["server"]
        url = args.url or f"http://{server['host']}:{server['port']}"
        policy = ReconnectPolicy.from_config(config["stream"])
        success = watch_logs(url, args.task_id, policy=policy, raw=args.raw, logger=logger)
        sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
