"""Directory access layer.

Public API:
    - DirectoryConfig, SecurityQuestion, SecurityChallenge, PasswordWarningInfo, Modification
    - DirectoryServer (contract), BaseLdapServer
    - ActiveDirectoryServer, StandardLdapServer
    - build_directory_server
"""

from .models import DirectoryConfig, Modification, PasswordWarningInfo, SecurityChallenge, SecurityQuestion
from .contract import DirectoryServer
from .base import BaseLdapServer
from .active_directory import ActiveDirectoryServer, MaxPwdAgeCache
from .standard import StandardLdapServer
from .factory import build_directory_server

__all__ = [
    "DirectoryConfig",
    "Modification",
    "PasswordWarningInfo",
    "SecurityChallenge",
    "SecurityQuestion",
    "DirectoryServer",
    "BaseLdapServer",
    "ActiveDirectoryServer",
    "MaxPwdAgeCache",
    "StandardLdapServer",
    "build_directory_server",
]
