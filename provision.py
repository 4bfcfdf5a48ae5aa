"""Run one provisioning pass against the configured cluster.

Usage:
    python provision.py                          # use local_settings.json
    python provision.py --settings prod.json     # use another settings file
    python provision.py --debug --log-file logs/provision.log
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from elastic_transport import TransportError
from elasticsearch.exceptions import ApiError

from errors import ProvisioningError
from es_setup import open_client
from settings import configure_logging, load_settings

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create or update Elasticsearch indices, templates and aliases")
    parser.add_argument("--settings", type=str, help="Path to the JSON settings file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", type=str, help="Also write logs to this file")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.settings, overrides={"async": False})
    except ProvisioningError as exc:
        configure_logging(level="DEBUG" if args.debug else "INFO", log_file=args.log_file)
        logger.error("Invalid settings: %s", exc)
        return 1

    configure_logging(level="DEBUG" if args.debug else settings.log_level, log_file=args.log_file)

    try:
        provisioned = open_client(settings)
    except (ProvisioningError, ApiError, TransportError) as exc:
        logger.error("Provisioning failed: %s", exc)
        return 1

    try:
        report = provisioned.report
        for kind, name, action in report.entries:
            logger.info("%-20s %-40s %s", kind, name, action.value)
    finally:
        provisioned.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
