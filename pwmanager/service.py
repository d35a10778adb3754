from __future__ import annotations

import logging

from .env_settings import DirectorySettings, get_settings
from .ldap import DirectoryServer, PasswordWarningInfo, SecurityChallenge, build_directory_server
from .log_config import setup_logging

logger = logging.getLogger(__name__)


class PasswordManagerService:
    """Entry point used by the password reset and challenge setup flows."""

    def __init__(self, server: DirectoryServer) -> None:
        self.server = server

    def verify_password(self, username: str, password: str) -> bool:
        return self.server.verify_password(username, password)

    def set_password(self, username: str, new_password: str) -> None:
        logger.info("Changing password for %s on %s", username, self.server.description)
        self.server.set_password(username, new_password)

    def get_password_warning_info(self, username: str) -> PasswordWarningInfo | None:
        return self.server.get_password_warning_info(username)

    def needs_password_warning(self, username: str) -> bool:
        info = self.server.get_password_warning_info(username)
        return info is not None and info.warn

    def get_user_security_challenge(self, username: str) -> SecurityChallenge | None:
        return self.server.get_user_security_challenge(username)

    def set_user_security_challenge(self, username: str, challenge: SecurityChallenge) -> None:
        logger.info("Storing %d security questions for %s", len(challenge.questions), username)
        self.server.set_user_security_challenge(username, challenge)

    def get_default_security_challenge(self, username: str) -> SecurityChallenge | None:
        return self.server.get_default_security_challenge(username)

    def lookup_security_challenge(self, username: str) -> SecurityChallenge | None:
        """The user's own challenge, else the pre-seeded default one."""
        challenge = self.server.get_user_security_challenge(username)
        if challenge is not None:
            return challenge
        logger.debug("No security questions for %s, trying defaults", username)
        return self.server.get_default_security_challenge(username)


def service_from_settings(settings: DirectorySettings | None = None) -> PasswordManagerService:
    st = settings or get_settings()
    setup_logging(st.log_level, st.log_file, st.log_retention_days)
    server = build_directory_server(st.to_directory_config())
    logger.info("Using %s directory %s", st.directory_type, server.description)
    return PasswordManagerService(server)
