"""
Ticket Store Commands

CLI command implementations. Each module registers a group of related
subcommands.
"""

from . import backup, records, registry

__all__ = ["backup", "records", "registry"]
