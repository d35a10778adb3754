from __future__ import annotations

import logging

from ldap3.core.exceptions import LDAPException

from ..exceptions import DirectoryOperationError, DirectoryUnavailable
from .base import BaseLdapServer, describe_result
from .models import PasswordWarningInfo

logger = logging.getLogger(__name__)


class StandardLdapServer(BaseLdapServer):
    """RFC-compliant directories (OpenLDAP, 389-ds) without expiration reporting."""

    def set_password(self, username: str, password: str) -> None:
        with self._service_connection() as conn:
            dn = str(self._find_entry(conn, username)["dn"])
            try:
                ok = conn.extend.standard.modify_password(user=dn, new_password=password)
            except LDAPException as e:
                raise DirectoryUnavailable(f"Password modify on {self.description} failed: {e}") from e
            if not ok:
                raise DirectoryOperationError(
                    f"Password modify of {dn} failed: {describe_result(conn.result)}", conn.result
                )
        logger.info("Password replaced for %s on %s", username, self.description)

    def get_password_warning_info(self, username: str) -> PasswordWarningInfo | None:
        return None
