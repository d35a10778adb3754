from __future__ import annotations

import logging
import ssl
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

from ldap3 import BASE, FIRST, NONE, SUBTREE, Connection, Server, ServerPool, Tls
from ldap3.core.exceptions import LDAPCommunicationError, LDAPException
from ldap3.core.results import (
    RESULT_BUSY,
    RESULT_INAPPROPRIATE_AUTHENTICATION,
    RESULT_INVALID_CREDENTIALS,
    RESULT_REFERRAL,
    RESULT_SUCCESS,
    RESULT_UNAVAILABLE,
    RESULT_UNWILLING_TO_PERFORM,
)

from ..exceptions import (
    AmbiguousEntry,
    DirectoryOperationError,
    DirectoryUnavailable,
    EntryNotFound,
)
from .contract import DirectoryServer
from .mappers import (
    challenge_attributes,
    check_challenge_config,
    map_default_security_challenge,
    map_security_challenge,
    security_challenge_modifications,
)
from .models import DirectoryConfig, Modification, SecurityChallenge, modifications_to_changes
from .utils import escape_ldap_filter_value

logger = logging.getLogger(__name__)

# partialResults (LDAPv2, still sent by AD) and referral.
_PARTIAL_RESULT_CODES = frozenset({9, RESULT_REFERRAL})
# Bind refusals that mean "wrong credentials" rather than "directory down".
_AUTH_FAILURE_CODES = frozenset({
    RESULT_INVALID_CREDENTIALS,
    RESULT_INAPPROPRIATE_AUTHENTICATION,
    RESULT_UNWILLING_TO_PERFORM,
})
_UNAVAILABLE_CODES = frozenset({RESULT_BUSY, RESULT_UNAVAILABLE})


def describe_result(result: dict | None) -> str:
    res = dict(result or {})
    desc = res.get("description") or "unknown error"
    msg = res.get("message") or ""
    return f"{desc} ({msg})" if msg else desc


def _unbind_quietly(conn: Connection | None) -> None:
    if conn is None:
        return
    try:
        conn.unbind()
    except LDAPException as e:
        logger.debug("Ignoring unbind failure: %s", e)


class BaseLdapServer(DirectoryServer):
    """Directory server logic shared by every LDAP product.

    Password changes and expiration reporting depend on the product and are
    left to subclasses.
    """

    def __init__(self, cfg: DirectoryConfig) -> None:
        check_challenge_config(cfg)
        self.cfg = cfg

        tls = Tls(validate=ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE)
        servers = [
            Server(
                host=host,
                port=cfg.port,
                use_ssl=cfg.use_ssl,
                get_info=NONE,
                tls=tls,
                connect_timeout=float(cfg.connect_timeout),
            )
            for host in cfg.hosts
        ]
        if len(servers) == 1:
            self.server: Server | ServerPool = servers[0]
        else:
            self.server = ServerPool(servers, FIRST, active=1, exhaust=False)

    @property
    def description(self) -> str:
        return self.cfg.label

    # -- connections -----------------------------------------------------

    def _conn(self, user: str, password: str) -> Connection:
        conn = Connection(
            self.server,
            user=user or None,
            password=password or None,
            auto_bind=False,
            auto_referrals=False,
            raise_exceptions=False,
            receive_timeout=float(self.cfg.receive_timeout),
        )
        try:
            conn.open()
            if self.cfg.starttls:
                conn.start_tls()
        except LDAPException as e:
            _unbind_quietly(conn)
            raise DirectoryUnavailable(f"Cannot connect to {self.description}: {e}") from e
        return conn

    @contextmanager
    def _service_connection(self) -> Iterator[Connection]:
        conn = self._conn(self.cfg.bind_dn, self.cfg.bind_password)
        try:
            try:
                ok = bool(conn.bind())
            except LDAPException as e:
                raise DirectoryUnavailable(f"Service bind to {self.description} failed: {e}") from e
            if not ok:
                raise DirectoryUnavailable(
                    f"Service bind to {self.description} refused: {describe_result(conn.result)}"
                )
            yield conn
        except LDAPCommunicationError as e:
            raise DirectoryUnavailable(f"Lost connection to {self.description}: {e}") from e
        finally:
            _unbind_quietly(conn)

    # -- search ----------------------------------------------------------

    def _search(
        self,
        conn: Connection,
        search_filter: str,
        attributes: Sequence[str],
        search_base: str | None = None,
        search_scope: str = SUBTREE,
    ) -> list[dict]:
        base = self.cfg.search_base if search_base is None else search_base
        conn.search(
            search_base=base,
            search_filter=search_filter,
            search_scope=search_scope,
            attributes=list(attributes) or None,
        )
        result = dict(conn.result or {})
        code = result.get("result", RESULT_SUCCESS)
        response = list(conn.response or [])
        entries = [r for r in response if r.get("type") == "searchResEntry"]
        referrals = [r for r in response if r.get("type") == "searchResRef"]

        if code in _PARTIAL_RESULT_CODES or referrals:
            if not self.cfg.ignore_partial_results:
                raise DirectoryOperationError(
                    f"Partial results searching {base} for {search_filter}: {describe_result(result)}", result
                )
            logger.debug("Ignoring partial results under %s (%d referrals)", base, len(referrals))
        elif code != RESULT_SUCCESS:
            raise DirectoryOperationError(f"Search under {base} failed: {describe_result(result)}", result)
        return entries

    def _user_filter(self, username: str) -> str:
        return f"({self.cfg.username_attr}={escape_ldap_filter_value(username)})"

    def _find_entry(self, conn: Connection, username: str, attributes: Sequence[str] = ()) -> dict:
        entries = self._search(conn, self._user_filter(username), attributes)
        base = self.cfg.search_base
        if not entries:
            raise EntryNotFound(username, base)
        if len(entries) > 1:
            logger.warning("Multiple results found for %s under %s", username, base)
            raise AmbiguousEntry(username, base, len(entries))
        logger.debug("Found result for %s under base %s", username, base)
        return entries[0]

    def search_for_dn(self, username: str) -> str:
        logger.debug("Searching for DN for %s", username)
        with self._service_connection() as conn:
            return str(self._find_entry(conn, username)["dn"])

    def lookup(self, username: str, attributes: Sequence[str]) -> dict[str, Any]:
        """Raw attributes of the single entry for `username`."""
        with self._service_connection() as conn:
            entry = self._find_entry(conn, username, attributes)
        return dict(entry.get("raw_attributes") or {})

    # -- contract --------------------------------------------------------

    def modify(self, username: str, modifications: Sequence[Modification]) -> None:
        changes = modifications_to_changes(modifications)
        with self._service_connection() as conn:
            dn = str(self._find_entry(conn, username)["dn"])
            logger.debug("Modifying %s on %s", ", ".join(changes), dn)
            if not conn.modify(dn, changes):
                raise DirectoryOperationError(f"Modify of {dn} failed: {describe_result(conn.result)}", conn.result)

    def verify_password(self, username: str, password: str) -> bool:
        dn = self.search_for_dn(username)
        if not password:
            # An empty password would be an anonymous bind.
            logger.debug("Empty password for %s", dn)
            return False

        logger.debug("Authenticating as %s", dn)
        conn = self._conn(dn, password)
        try:
            try:
                ok = bool(conn.bind())
            except LDAPException as e:
                raise DirectoryUnavailable(f"Bind to {self.description} failed: {e}") from e
            if ok:
                return True
            result = dict(conn.result or {})
            code = result.get("result")
            if code in _UNAVAILABLE_CODES:
                raise DirectoryUnavailable(f"Bind to {self.description} failed: {describe_result(result)}")
            if code not in _AUTH_FAILURE_CODES:
                logger.warning("Unexpected bind result for %s: %s", dn, describe_result(result))
            logger.debug("Password verification failed for %s: %s", dn, describe_result(result))
            return False
        finally:
            _unbind_quietly(conn)

    def get_user_security_challenge(self, username: str) -> SecurityChallenge | None:
        logger.debug("Getting user security challenge for user %s", username)
        attrs = self.lookup(username, challenge_attributes(self.cfg))
        return map_security_challenge(attrs, self.cfg, username)

    def set_user_security_challenge(self, username: str, challenge: SecurityChallenge) -> None:
        self.modify(username, security_challenge_modifications(challenge, self.cfg))

    def get_default_security_challenge(self, username: str) -> SecurityChallenge | None:
        logger.debug("Getting default security challenge for %s", username)
        attrs = self.lookup(username, list(self.cfg.default_response_attrs))
        return map_default_security_challenge(attrs, self.cfg, username)

    def read_base_entry(self, attributes: Sequence[str]) -> dict[str, Any] | None:
        """Raw attributes of the search base object itself, or None."""
        with self._service_connection() as conn:
            entries = self._search(conn, "(objectClass=*)", attributes, search_scope=BASE)
        if not entries:
            return None
        return dict(entries[0].get("raw_attributes") or {})
