"""
Session value binding a SIRIUS client to one project.

A session is immutable: opening, switching projects or refreshing the
identifier map all return a new SiriusSession. Callers needing concurrent
imports must use separate sessions on separate projects.

Use it like this:

from siriusbridge.config import BaseConfig
from siriusbridge.connection import connect

session = connect(BaseConfig(project_id='my_project'))
session = switch_project(session, 'other_project')
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Union

from ..config.base_config import BaseConfig
from ..feature_import.identifier_map import IdentifierMap, build_identifier_map
from .client import SiriusClient


@dataclass(frozen=True)
class SiriusSession:
    """A SIRIUS client, the active project and its identifier map."""

    client: SiriusClient
    project_id: str
    project_path: Optional[str] = None
    feature_map: IdentifierMap = field(default_factory=IdentifierMap)

    def with_feature_map(self, feature_map: IdentifierMap) -> 'SiriusSession':
        return replace(self, feature_map=feature_map)

    def refresh(self) -> 'SiriusSession':
        """Return a session whose map reflects the service's current features."""
        snapshot = self.client.list_features(self.project_id)
        return self.with_feature_map(build_identifier_map(snapshot))


def open_project(client: SiriusClient, project_id: str,
                 path: Optional[Union[str, Path]] = None,
                 verbose: bool = True) -> SiriusSession:
    """
    Open a project, creating it when it does not exist yet.

    A project already loaded by the service is reused as is. Otherwise the
    project file at ``path`` is opened if it exists, or created there.

    Args:
        client: SIRIUS client
        project_id: Project identifier on the service
        path: Location of the project file (service default if None)
        verbose: Print progress messages

    Returns:
        SiriusSession bound to the project with a fresh identifier map
    """
    loaded = {p.get('projectId'): p for p in client.list_projects()}

    if project_id in loaded:
        info = loaded[project_id]
        if verbose:
            print(f"Using already opened project '{project_id}'")
    elif path is not None and Path(path).exists():
        info = client.open_project(project_id, path)
        if verbose:
            print(f"Opened project '{project_id}' from {path}")
    else:
        info = client.create_project(project_id, path)
        if verbose:
            print(f"Created project '{project_id}'" + (f" at {path}" if path else ""))

    project_path = (info or {}).get('location') or (str(path) if path else None)
    session = SiriusSession(client=client, project_id=project_id, project_path=project_path)
    return session.refresh()


def connect(config: Optional[BaseConfig] = None,
            client: Optional[SiriusClient] = None) -> SiriusSession:
    """Connect to the service described by ``config`` and open its project."""
    config = config or BaseConfig()
    client = client or SiriusClient.from_config(config)
    return open_project(client, config.project_id,
                        path=config.project_path(),
                        verbose=config.verbose)


def switch_project(session: SiriusSession, project_id: str,
                   path: Optional[Union[str, Path]] = None,
                   verbose: bool = True) -> SiriusSession:
    """Bind the session's client to another project."""
    return open_project(session.client, project_id, path=path, verbose=verbose)


def close_project(session: SiriusSession) -> None:
    session.client.close_project(session.project_id)


def shutdown(session: SiriusSession, verbose: bool = True) -> None:
    """Stop the SIRIUS service. The session is unusable afterwards."""
    session.client.shutdown()
    if verbose:
        print("SIRIUS service shut down")
