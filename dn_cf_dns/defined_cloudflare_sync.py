#!/usr/local/bin/python3
"""
Defined Networking to Cloudflare DNS Sync

Creates Cloudflare A records for the hosts of a Defined Networking Managed
Nebula network. Hosts are selected by a required name suffix and a set of
required tags; each selected host gets a record named after it under a
managed suffix, pointing at its Nebula IP address. Optionally, records under
the managed suffix that no longer belong to any selected host are deleted.

The tool is a one-shot job meant to be run periodically (e.g. once a minute
from cron or a systemd timer). It keeps no state between runs.

Configuration is read from a TOML file; API tokens can be overridden with
the CF_API_TOKEN and DN_API_TOKEN environment variables.
"""

import argparse
import logging
import os
import sys

import structlog

from .clients.cloudflare_client import CloudflareClient
from .clients.defined_client import DefinedClient
from .config import load_config
from .errors import SyncError
from .sync_logic import sync_dns

__version__ = "0.1.0"

log = structlog.get_logger()


def configure_logging(level_name):
    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="dn-cf-dns",
        description="dn-cf-dns manages DNS records in Cloudflare based on Defined Networking hosts",
    )
    parser.add_argument("--config", default="./config.toml", help="path to config file (default: ./config.toml)")
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="DEBUG, INFO, WARNING or ERROR (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def run(config_path):
    config = load_config(config_path)
    store = CloudflareClient(config.cloudflare.api_token.get_secret_value())
    directory = DefinedClient(config.defined.api_token.get_secret_value())
    return sync_dns(config, directory, store, log=log)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)
    log.info("Starting Defined.net Cloudflare DNS Sync", version=__version__, config=args.config)
    try:
        run(args.config)
    except SyncError as e:
        log.error("Sync failed", error_type=type(e).__name__, error=str(e))
        return 1
    except Exception:
        log.critical("An unhandled exception occurred in main", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
