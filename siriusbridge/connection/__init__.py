"""Connection to the SIRIUS REST service and project/session handling."""

from .client import SiriusClient
from .session import (
    SiriusSession,
    open_project,
    connect,
    switch_project,
    close_project,
    shutdown,
)
from .databases import list_databases, create_database, remove_database

__all__ = [
    'SiriusClient',
    'SiriusSession',
    'open_project',
    'connect',
    'switch_project',
    'close_project',
    'shutdown',
    'list_databases',
    'create_database',
    'remove_database',
]
