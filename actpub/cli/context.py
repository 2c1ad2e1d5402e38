from __future__ import annotations

import os
from dataclasses import dataclass

from actpub.core.config import RunConfig
from actpub.git.repository import Repository
from actpub.output.console import ConsoleProtocol, make_console
from actpub.services.release.gh import GhSession
from actpub.services.release.remote import GitHubRemote, HostingApi


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: RunConfig
    console: ConsoleProtocol
    remote: HostingApi
    repository: Repository


def build_context(config: RunConfig) -> CLIContext:
    env = dict(os.environ)
    session = GhSession.from_config(config, base_env=env)
    return CLIContext(
        config=config,
        console=make_console(env),
        remote=GitHubRemote(session),
        repository=Repository(
            config.workspace_root,
            token=config.token,
            host=config.api_hostname or "github.com",
        ),
    )
