from __future__ import annotations

import re
from types import SimpleNamespace

import pytest
from ldap3 import BASE, MODIFY_ADD, MODIFY_DELETE, MODIFY_REPLACE
from ldap3.core.exceptions import LDAPSocketOpenError

from pwmanager.ldap import DirectoryConfig

SEARCH_BASE = "DC=example,DC=test"
SERVICE_DN = "CN=svc-pwm,OU=Service,DC=example,DC=test"
SERVICE_PASSWORD = "svc-secret"

_EQ_FILTER = re.compile(r"^\(([\w-]+)=(.*)\)$")


def _raw(value) -> list[bytes]:
    values = value if isinstance(value, (list, tuple)) else [value]
    out = []
    for v in values:
        if isinstance(v, bytes):
            out.append(v)
        else:
            out.append(str(v).encode("utf-8"))
    return out


class FakeDirectory:
    """In-memory stand-in for an LDAP server, reached through FakeConnection."""

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, list[bytes]]] = {}
        self.passwords: dict[str, str] = {SERVICE_DN: SERVICE_PASSWORD}
        self.base_attributes: dict[str, list[bytes]] = {}
        self.referrals: list[str] = []
        self.search_result: dict | None = None
        self.bind_result: dict | None = None
        self.modify_result: dict | None = None
        self.down = False
        self.searches: list[tuple[str, str, str, list | None]] = []
        self.modifications: list[tuple[str, dict]] = []
        self.password_modifies: list[tuple[str, str]] = []
        self.binds: list[str | None] = []
        self.unbinds = 0

    def add_entry(self, dn: str, password: str | None = None, **attrs) -> None:
        self.entries[dn] = {k: _raw(v) for k, v in attrs.items()}
        if password is not None:
            self.passwords[dn] = password

    def connection(self, server, user=None, password=None, **kwargs) -> "FakeConnection":
        return FakeConnection(self, user, password)

    def policy_searches(self) -> int:
        return sum(1 for s in self.searches if s[2] == BASE)


class FakeConnection:
    def __init__(self, directory: FakeDirectory, user, password) -> None:
        self.directory = directory
        self.user = user
        self.password = password
        self.result: dict = {}
        self.response: list[dict] = []
        self.extend = SimpleNamespace(standard=SimpleNamespace(modify_password=self._modify_password))

    def open(self) -> None:
        if self.directory.down:
            raise LDAPSocketOpenError("socket connection error while opening: [Errno 111] Connection refused")

    def start_tls(self) -> bool:
        return True

    def bind(self) -> bool:
        self.directory.binds.append(self.user)
        if self.directory.bind_result is not None and self.user != SERVICE_DN:
            self.result = dict(self.directory.bind_result)
            return False
        if self.user is not None and self.directory.passwords.get(self.user) == self.password:
            self.result = {"result": 0, "description": "success"}
            return True
        self.result = {"result": 49, "description": "invalidCredentials", "message": "80090308: data 52e"}
        return False

    def unbind(self) -> bool:
        self.directory.unbinds += 1
        return True

    def search(self, search_base, search_filter, search_scope, attributes=None) -> bool:
        self.directory.searches.append((search_base, search_filter, search_scope, attributes))
        wanted = [a.lower() for a in (attributes or [])]

        def project(attrs: dict) -> dict:
            return {k: v for k, v in attrs.items() if k.lower() in wanted}

        self.response = []
        if search_scope == BASE:
            if search_base == SEARCH_BASE:
                self.response.append(
                    {"type": "searchResEntry", "dn": SEARCH_BASE, "raw_attributes": project(self.directory.base_attributes)}
                )
        else:
            m = _EQ_FILTER.match(search_filter)
            attr, value = m.group(1).lower(), m.group(2)
            for dn, attrs in self.directory.entries.items():
                values = [v for k, vs in attrs.items() if k.lower() == attr for v in vs]
                if value.encode("utf-8") in values:
                    self.response.append({"type": "searchResEntry", "dn": dn, "raw_attributes": project(attrs)})
            for uri in self.directory.referrals:
                self.response.append({"type": "searchResRef", "uri": [uri]})

        self.result = dict(self.directory.search_result or {"result": 0, "description": "success"})
        return bool(self.response)

    def modify(self, dn, changes) -> bool:
        self.directory.modifications.append((dn, changes))
        if self.directory.modify_result is not None:
            self.result = dict(self.directory.modify_result)
            return False
        entry = self.directory.entries[dn]
        for attr, ops in changes.items():
            for op, values in ops:
                if op == MODIFY_REPLACE:
                    entry[attr] = _raw(values)
                elif op == MODIFY_ADD:
                    entry.setdefault(attr, []).extend(_raw(values))
                elif op == MODIFY_DELETE:
                    entry.pop(attr, None)
        self.result = {"result": 0, "description": "success"}
        return True

    def _modify_password(self, user=None, old_password=None, new_password=None, **kwargs) -> bool:
        self.directory.password_modifies.append((user, new_password))
        self.directory.passwords[user] = new_password
        self.result = {"result": 0, "description": "success"}
        return True


@pytest.fixture
def directory(monkeypatch) -> FakeDirectory:
    d = FakeDirectory()
    monkeypatch.setattr("pwmanager.ldap.base.Connection", d.connection)
    return d


@pytest.fixture
def cfg() -> DirectoryConfig:
    return DirectoryConfig(
        hosts=("dc1.example.test",),
        search_base=SEARCH_BASE,
        bind_dn=SERVICE_DN,
        bind_password=SERVICE_PASSWORD,
        description="Example AD",
        security_question_attrs=("extensionAttribute1", "extensionAttribute3"),
        security_response_attrs=("extensionAttribute2", "extensionAttribute4"),
        default_questions=("What is your employee number?",),
        default_response_attrs=("employeeID",),
        password_warn_age_days=10,
        max_pwd_age_refresh_seconds=3600,
    )
