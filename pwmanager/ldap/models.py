from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from ldap3 import MODIFY_ADD, MODIFY_DELETE, MODIFY_REPLACE


@dataclass(frozen=True)
class DirectoryConfig:
    """Read-only directory settings shared by every server variant."""

    hosts: tuple[str, ...]
    search_base: str
    bind_dn: str = ""
    bind_password: str = field(default="", repr=False)
    port: int = 636
    use_ssl: bool = True
    starttls: bool = False
    tls_validate: bool = True
    connect_timeout: float = 5.0
    receive_timeout: float = 10.0
    directory_type: str = "ad"
    description: str = ""

    username_attr: str = "sAMAccountName"
    password_attr: str = "unicodePwd"
    security_question_attrs: tuple[str, ...] = ()
    security_response_attrs: tuple[str, ...] = ()
    default_questions: tuple[str, ...] = ()
    default_response_attrs: tuple[str, ...] = ()
    ignore_partial_results: bool = False

    # Active Directory only
    max_pwd_age_attr: str = "maxPwdAge"
    pwd_last_set_attr: str = "pwdLastSet"
    uac_attr: str = "userAccountControl"
    password_warn_age_days: int = 0
    max_pwd_age_refresh_seconds: int = 86400

    @property
    def label(self) -> str:
        if self.description:
            return self.description
        return ",".join(self.hosts) or self.search_base


@dataclass(frozen=True)
class SecurityQuestion:
    question_text: str
    response_text: str


@dataclass(frozen=True)
class SecurityChallenge:
    username: str
    questions: tuple[SecurityQuestion, ...] = ()

    def __post_init__(self) -> None:
        # Accept any sequence from callers but always store a tuple.
        object.__setattr__(self, "questions", tuple(self.questions))


@dataclass(frozen=True)
class PasswordWarningInfo:
    age_since_change: int
    warn: bool


@dataclass(frozen=True)
class Modification:
    """One attribute change inside a single modify request."""

    operation: str
    attribute: str
    values: tuple[Any, ...] = ()

    @classmethod
    def replace(cls, attribute: str, *values: Any) -> "Modification":
        return cls(MODIFY_REPLACE, attribute, tuple(values))

    @classmethod
    def add(cls, attribute: str, *values: Any) -> "Modification":
        return cls(MODIFY_ADD, attribute, tuple(values))

    @classmethod
    def delete(cls, attribute: str, *values: Any) -> "Modification":
        return cls(MODIFY_DELETE, attribute, tuple(values))


def modifications_to_changes(modifications: Sequence[Modification]) -> dict[str, list[tuple[str, list[Any]]]]:
    """Build the ldap3 `changes` mapping, keeping per-attribute operation order."""
    changes: dict[str, list[tuple[str, list[Any]]]] = {}
    for m in modifications:
        if m.operation not in (MODIFY_ADD, MODIFY_DELETE, MODIFY_REPLACE):
            raise ValueError(f"Unsupported modify operation: {m.operation!r}")
        changes.setdefault(m.attribute, []).append((m.operation, list(m.values)))
    return changes
