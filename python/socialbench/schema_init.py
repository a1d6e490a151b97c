#!/usr/bin/env python3
"""
Create the social media keyspace and tables.

Reads the bundled schema.cql, fills in the keyspace and replication
settings, and executes each statement in order. Every statement uses
IF NOT EXISTS, so running it again is harmless.

Usage:
    socialbench-schema
"""

import logging
import sys
from pathlib import Path
from string import Template
from typing import List

from . import config
from .db import CqlSessionAdapter
from .errors import ConnectFailed, QueryFailed

log = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).with_name("schema.cql")


def load_schema(
    keyspace: str = config.KEYSPACE,
    datacenter: str = config.LOCAL_DATACENTER,
    replication_factor: int = config.REPLICATION_FACTOR,
) -> str:
    """Render schema.cql for the given keyspace and replication."""
    template = Template(SCHEMA_FILE.read_text(encoding="utf-8"))
    return template.substitute(
        keyspace=keyspace,
        datacenter=datacenter,
        replication_factor=int(replication_factor),
    )


def split_statements(cql_text: str) -> List[str]:
    """
    Split a CQL script into individual statements.

    Full-line ``--`` comments are dropped; statements are separated by ``;``.
    """
    lines = [line for line in cql_text.splitlines() if not line.strip().startswith("--")]
    statements = []
    for raw in "\n".join(lines).split(";"):
        stmt = raw.strip()
        if stmt:
            statements.append(stmt)
    return statements


def apply_schema(adapter, keyspace=config.KEYSPACE, datacenter=config.LOCAL_DATACENTER,
                 replication_factor=config.REPLICATION_FACTOR) -> int:
    """
    Execute every schema statement.

    Returns:
        Number of statements executed

    Raises:
        QueryFailed: a statement was rejected
    """
    statements = split_statements(load_schema(keyspace, datacenter, replication_factor))
    for stmt in statements:
        adapter.execute(stmt)
        log.info(f"Executed: {' '.join(stmt.split())[:80]}")
    log.info(f"Schema initialized successfully ({len(statements)} statements).")
    return len(statements)


def main() -> int:
    """Main entry point."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    try:
        with CqlSessionAdapter.open(keyspace=None) as adapter:
            apply_schema(adapter)
    except ConnectFailed as e:
        log.critical(f"Could not connect: {e}")
        return 1
    except QueryFailed as e:
        log.error(f"Error executing CQL: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
