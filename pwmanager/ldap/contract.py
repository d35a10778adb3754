from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from .models import Modification, PasswordWarningInfo, SecurityChallenge


class DirectoryServer(ABC):
    """Operations a password-management workflow needs from a directory."""

    @abstractmethod
    def modify(self, username: str, modifications: Sequence[Modification]) -> None: ...

    @abstractmethod
    def set_password(self, username: str, password: str) -> None: ...

    @abstractmethod
    def verify_password(self, username: str, password: str) -> bool: ...

    @abstractmethod
    def get_user_security_challenge(self, username: str) -> SecurityChallenge | None: ...

    @abstractmethod
    def set_user_security_challenge(self, username: str, challenge: SecurityChallenge) -> None: ...

    @abstractmethod
    def get_default_security_challenge(self, username: str) -> SecurityChallenge | None: ...

    @abstractmethod
    def get_password_warning_info(self, username: str) -> PasswordWarningInfo | None: ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Label for operator-facing logs."""
