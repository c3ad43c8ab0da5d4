import configparser
import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_PORT = 50000


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    root: str = "."  # Directory served to clients


@dataclass
class ClientConfig:
    host: str = "localhost"
    port: int = DEFAULT_PORT
    local_dir: str = "."  # Where put reads from and get writes to


@dataclass
class ConnectionConfig:
    timeout_seconds: int = 30  # Connect timeout only; rounds block indefinitely
    retry_attempts: int = 3
    retry_delay_seconds: int = 1
    chunk_size: int = 1024
    max_list_bytes: int = 16 * 1024 * 1024


@dataclass
class LogConfig:
    level: str = "INFO"
    file: str = ""
    console: bool = True


@dataclass
class AppConfig:
    server: ServerConfig
    client: ClientConfig
    connection: ConnectionConfig
    logging: LogConfig


def _get_int(section: configparser.SectionProxy, key: str, target: dict) -> None:
    value = section.get(key)
    if not value:
        return
    try:
        target[key] = int(value)
    except ValueError:
        raise ValueError(f"Invalid {key} value in config: '{value}' - must be an integer")


def _get_bool(section: configparser.SectionProxy, key: str, target: dict) -> None:
    value = section.get(key)
    if value:
        target[key] = value.lower() in ("true", "1", "yes")


def load_config(config_path: str | None = None, **cli_args) -> AppConfig:
    """
    Load configuration from an INI file and/or CLI arguments.

    Precedence, highest first: CLI arguments, INI file, environment
    (CIX_SERVER_HOST / CIX_SERVER_PORT for the client), defaults.

    Args:
        config_path: Path to the INI configuration file.
        **cli_args: Key-value pairs from command line arguments. Keys:
            server_host, server_port, root, client_host, client_port,
            local_dir, debug.

    Returns:
        AppConfig: The populated configuration object.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If a value is malformed or out of range.
    """
    server_config = {
        "host": "0.0.0.0",
        "port": DEFAULT_PORT,
        "root": ".",
    }
    client_config = {
        "host": "localhost",
        "port": DEFAULT_PORT,
        "local_dir": ".",
    }
    connection_config = {
        "timeout_seconds": 30,
        "retry_attempts": 3,
        "retry_delay_seconds": 1,
        "chunk_size": 1024,
        "max_list_bytes": 16 * 1024 * 1024,
    }
    log_config = {
        "level": "INFO",
        "file": "",
        "console": True,
    }

    # Environment fallback for the client target
    if os.environ.get("CIX_SERVER_HOST"):
        client_config["host"] = os.environ["CIX_SERVER_HOST"]
    if os.environ.get("CIX_SERVER_PORT"):
        try:
            client_config["port"] = int(os.environ["CIX_SERVER_PORT"])
        except ValueError:
            value = os.environ["CIX_SERVER_PORT"]
            raise ValueError(f"Invalid CIX_SERVER_PORT value: '{value}' - must be an integer")

    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        parser = configparser.ConfigParser()
        parser.read(config_file, encoding="utf-8")

        if parser.has_section("server"):
            section = parser["server"]
            if section.get("host"):
                server_config["host"] = section.get("host")
            _get_int(section, "port", server_config)
            if section.get("root"):
                server_config["root"] = section.get("root")

        if parser.has_section("client"):
            section = parser["client"]
            if section.get("host"):
                client_config["host"] = section.get("host")
            _get_int(section, "port", client_config)
            if section.get("local_dir"):
                client_config["local_dir"] = section.get("local_dir")

        if parser.has_section("connection"):
            section = parser["connection"]
            for key in connection_config:
                _get_int(section, key, connection_config)

        if parser.has_section("logging"):
            section = parser["logging"]
            if section.get("level"):
                log_config["level"] = section.get("level")
            if section.get("file") is not None:
                log_config["file"] = section.get("file")
            _get_bool(section, "console", log_config)

    # Override with CLI arguments (cli_args take precedence)
    if cli_args.get("server_host") is not None:
        server_config["host"] = cli_args["server_host"]
    if cli_args.get("server_port") is not None:
        server_config["port"] = int(cli_args["server_port"])
    if cli_args.get("root") is not None:
        server_config["root"] = cli_args["root"]
    if cli_args.get("client_host") is not None:
        client_config["host"] = cli_args["client_host"]
    if cli_args.get("client_port") is not None:
        client_config["port"] = int(cli_args["client_port"])
    if cli_args.get("local_dir") is not None:
        client_config["local_dir"] = cli_args["local_dir"]
    if cli_args.get("debug"):
        log_config["level"] = "DEBUG"
        log_config["console"] = True

    # Validate ranges
    for label, port in (("server", server_config["port"]), ("client", client_config["port"])):
        if not 0 <= port <= 65535:
            raise ValueError(f"Invalid {label} port: {port}. Must be between 0 and 65535.")
    for key in ("chunk_size", "max_list_bytes"):
        if connection_config[key] <= 0:
            raise ValueError(f"Invalid {key}: {connection_config[key]}. Must be positive.")
    if connection_config["retry_attempts"] < 1:
        raise ValueError(
            f"Invalid retry_attempts: {connection_config['retry_attempts']}. Must be at least 1."
        )

    return AppConfig(
        server=ServerConfig(
            host=server_config["host"],
            port=server_config["port"],
            root=server_config["root"],
        ),
        client=ClientConfig(
            host=client_config["host"],
            port=client_config["port"],
            local_dir=client_config["local_dir"],
        ),
        connection=ConnectionConfig(
            timeout_seconds=connection_config["timeout_seconds"],
            retry_attempts=connection_config["retry_attempts"],
            retry_delay_seconds=connection_config["retry_delay_seconds"],
            chunk_size=connection_config["chunk_size"],
            max_list_bytes=connection_config["max_list_bytes"],
        ),
        logging=LogConfig(
            level=log_config["level"],
            file=log_config["file"],
            console=log_config["console"],
        ),
    )
