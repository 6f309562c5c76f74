"""Searchable structure databases known to the SIRIUS service."""

from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from .session import SiriusSession

DATABASE_COLUMNS = {
    'databaseId': 'database_id',
    'displayName': 'display_name',
    'location': 'location',
    'customDb': 'custom',
    'searchable': 'searchable',
    'numberOfStructures': 'n_structures',
    'numberOfFormulas': 'n_formulas',
    'numberOfReferenceSpectra': 'n_reference_spectra',
}


def list_databases(session: SiriusSession) -> pd.DataFrame:
    """List all searchable databases, built-in and custom."""
    dbs = pd.DataFrame(session.client.list_databases())
    if dbs.empty:
        return pd.DataFrame(columns=list(DATABASE_COLUMNS.values()))
    dbs = dbs.rename(columns=DATABASE_COLUMNS)
    important_cols = [c for c in DATABASE_COLUMNS.values() if c in dbs.columns]
    other_cols = [c for c in dbs.columns if c not in important_cols]
    return dbs[important_cols + other_cols]


def create_database(session: SiriusSession, database_id: str,
                    location: Optional[Union[str, Path]] = None,
                    display_name: Optional[str] = None,
                    match_rt_of_reference_spectra: bool = False) -> Dict:
    """
    Create an empty custom database.

    Args:
        session: Active session
        database_id: Identifier (also the file name) of the new database
        location: Directory holding the database file (service default if None)
        display_name: Name shown in results (defaults to database_id)
        match_rt_of_reference_spectra: Use reference retention times when matching

    Returns:
        Database description returned by the service
    """
    parameters = {
        'displayName': display_name or database_id,
        'matchRtOfReferenceSpectra': match_rt_of_reference_spectra,
    }
    if location is not None:
        parameters['location'] = str(location)
    return session.client.create_database(database_id, parameters)


def remove_database(session: SiriusSession, database_id: str, delete: bool = False) -> None:
    """Unregister a custom database; ``delete=True`` also removes its file."""
    session.client.remove_database(database_id, delete=delete)
