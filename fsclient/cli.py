"""
Command line interface for the file storage client

Exactly one command per invocation:

    file-storage-client --list-files
    file-storage-client --upload-file ./report.txt
    file-storage-client --delete-file report.txt
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import load_config
from .rest import RestClient

logger = logging.getLogger(__name__)

EXECUTABLE = "file-storage-client"
HELP_HEADER = "This CLI needs exactly one of the commands below"
HELP_FOOTER = "Provide a command in either the short '-' or long '--' form"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


class CommandLineError(Exception):
    """Raised instead of exiting when the command line cannot be parsed"""
    pass


class _CommandLineParser(argparse.ArgumentParser):
    def error(self, message):
        raise CommandLineError(message)


def _global_options() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--config",
        default=os.getenv("FSCLIENT_CONFIG", "fsclient.yaml"),
        help="Configuration file path (default: %(default)s)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug output")
    return parser


def setup_logging(verbose: bool = False):
    """Route client reports to stdout as plain user messages"""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    root_logger.addHandler(handler)

    # Keep the HTTP stack quiet unless debugging
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


class CommandDispatcher:
    """Parses one command and runs it against a RestClient"""

    def __init__(self, rest_client: RestClient):
        self.rest_client = rest_client

    def build_parser(self) -> argparse.ArgumentParser:
        size_limit = self.rest_client.get_upload_size_limit()
        size_instructions = (
            f"<= {size_limit}" if size_limit else "within bounds allowed by the server"
        )

        parser = _CommandLineParser(
            prog=EXECUTABLE,
            description=HELP_HEADER,
            epilog=HELP_FOOTER,
            parents=[_global_options()],
        )
        commands = parser.add_mutually_exclusive_group()
        commands.add_argument(
            "-l", "--list-files",
            action="store_true",
            help="List all uploaded files on the server. No extra arguments needed",
        )
        commands.add_argument(
            "-u", "--upload-file",
            metavar="PATH",
            help="Uploads the file provided as argument. The file must exist locally and "
                 f"must have the size {size_instructions} or else an error will be reported",
        )
        commands.add_argument(
            "-d", "--delete-file",
            metavar="NAME",
            help="Deletes from the server the file provided as argument. The file must "
                 "exist on the server or else an error will be reported",
        )
        return parser

    def run(self, argv: List[str]) -> int:
        """Parse argv and dispatch; returns a process exit code"""
        parser = self.build_parser()
        try:
            args = parser.parse_args(argv)
        except CommandLineError as e:
            logger.error(
                f"Error parsing command line input ({e}). "
                "Please consult the usage guide and try again"
            )
            parser.print_help()
            return EXIT_USAGE

        if args.list_files:
            logger.debug("Received command to list all uploaded files")
            result = self.rest_client.list_files()
        elif args.upload_file is not None:
            logger.debug("Received command to upload a file")
            if not Path(args.upload_file).is_file():
                logger.error(
                    f"File {args.upload_file} doesn't exist. Please select a file which exists"
                )
                parser.print_help()
                return EXIT_USAGE
            result = self.rest_client.upload_file(args.upload_file)
        elif args.delete_file is not None:
            logger.debug("Received command to delete a file")
            result = self.rest_client.delete_file(args.delete_file)
        else:
            logger.error("No options specified. Please consult the usage guide and try again")
            parser.print_help()
            return EXIT_USAGE

        return EXIT_OK if result.ok else EXIT_FAILED


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the file-storage-client executable"""
    if argv is None:
        argv = sys.argv[1:]

    global_args, _ = _global_options().parse_known_args(argv)
    setup_logging(global_args.verbose)

    config = load_config(global_args.config)
    with RestClient(config.files_url, config.stats_url, timeout=config.timeout) as client:
        return CommandDispatcher(client).run(argv)


if __name__ == "__main__":
    sys.exit(main())
