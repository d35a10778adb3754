from __future__ import annotations

from ..exceptions import ConfigurationError
from .active_directory import ActiveDirectoryServer
from .base import BaseLdapServer
from .models import DirectoryConfig
from .standard import StandardLdapServer

SERVER_TYPES: dict[str, type[BaseLdapServer]] = {
    "ad": ActiveDirectoryServer,
    "ldap": StandardLdapServer,
}


def build_directory_server(cfg: DirectoryConfig) -> BaseLdapServer:
    """Instantiate the server variant named by `cfg.directory_type`."""
    key = (cfg.directory_type or "").strip().lower()
    try:
        cls = SERVER_TYPES[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown directory type {cfg.directory_type!r}, expected one of: {', '.join(SERVER_TYPES)}"
        ) from None
    if not cfg.hosts:
        raise ConfigurationError("No directory hosts configured")
    return cls(cfg)
