"""
cix - Main Entry Point

Command line interface for the cix file server and its interactive client.
"""

import argparse
import logging
import sys

from .client import CixClient
from .config import load_config
from .errors import TransportError
from .filesystem import LocalFileSystem
from .logger import setup_logging
from .server import Server
from .shell import CommandShell

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="cix",
        description="cix - remote file access over a single TCP connection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cix server --port 50000 --root /srv/files
  cix server --config cix.ini
  cix client fileserver.local 50000
  cix client --local-dir ~/downloads
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    server_parser = subparsers.add_parser("server", help="Serve a directory")
    server_parser.add_argument("--config", help="Path to configuration file")
    server_parser.add_argument("--host", help="Address to listen on")
    server_parser.add_argument("--port", type=int, help="Port to listen on")
    server_parser.add_argument("--root", help="Directory to serve")
    server_parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    client_parser = subparsers.add_parser("client", help="Connect to a server interactively")
    client_parser.add_argument("host", nargs="?", help="Server host")
    client_parser.add_argument("port", nargs="?", type=int, help="Server port")
    client_parser.add_argument("--config", help="Path to configuration file")
    client_parser.add_argument("--local-dir", help="Local directory for put and get")
    client_parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def cmd_server(args):
    """
    Handle the server command.

    Blocks serving connections until Ctrl+C is pressed.
    """
    try:
        config = load_config(
            config_path=args.config,
            server_host=args.host,
            server_port=args.port,
            root=args.root,
            debug=args.verbose,
        )
    except (ValueError, FileNotFoundError) as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1

    setup_logging(config.logging)
    from . import __version__

    logger.info("Starting cix server v%s", __version__)
    server = Server(config.server, LocalFileSystem(config.server.root), config.connection)
    try:
        host, port = server.bind()
    except OSError as e:
        logger.error("Could not start server: %s", e)
        print(f"[ERROR] Could not listen on {config.server.host}:{config.server.port}: {e}")
        return 1

    print(f"[OK] Serving {config.server.root} on {host}:{port}")
    print("     Press Ctrl+C to stop.")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print()
        logger.info("Received interrupt, stopping...")
    finally:
        server.shutdown()
    return 0


def cmd_client(args):
    """
    Handle the client command.

    Connects, then runs the command loop on stdin until exit or EOF.
    """
    try:
        config = load_config(
            config_path=args.config,
            client_host=args.host,
            client_port=args.port,
            local_dir=args.local_dir,
            debug=args.verbose,
        )
    except (ValueError, FileNotFoundError) as e:
        print(f"[ERROR] Configuration error: {e}")
        return 1

    setup_logging(config.logging)
    client = CixClient(config.client, config.connection)
    try:
        client.connect()
    except ConnectionError as e:
        logger.error("Failed to connect to server: %s", e)
        print(f"[ERROR] Could not connect to server at {config.client.host}:{config.client.port}")
        return 1

    try:
        CommandShell(client).run()
    except TransportError as e:
        logger.error("Connection lost: %s", e)
        print(f"[ERROR] Connection lost: {e}")
        return 1
    except KeyboardInterrupt:
        print()
    finally:
        client.disconnect()
    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    if args.command == "server":
        return cmd_server(args)
    elif args.command == "client":
        return cmd_client(args)
    else:
        print("Usage: cix <command> [options]")
        print()
        print("Commands:")
        print("  server   Serve a directory to cix clients")
        print("  client   Connect to a cix server")
        print()
        print("Run 'cix <command> --help' for more information.")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
