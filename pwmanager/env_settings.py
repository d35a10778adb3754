"""Process-wide configuration read from the environment.

List-valued settings are given as JSON, e.g.
``PWM_SECURITY_QUESTION_ATTRS='["extensionAttribute1","extensionAttribute3"]'``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .ldap.models import DirectoryConfig


class DirectorySettings(BaseSettings):
    # Connection
    directory_type: str = Field("ad", alias="PWM_DIRECTORY_TYPE")
    hosts: List[str] = Field(default_factory=list, alias="PWM_HOSTS")
    port: int = Field(636, alias="PWM_PORT")
    use_ssl: bool = Field(True, alias="PWM_USE_SSL")
    starttls: bool = Field(False, alias="PWM_STARTTLS")
    tls_validate: bool = Field(True, alias="PWM_TLS_VALIDATE")
    bind_dn: str = Field("", alias="PWM_BIND_DN")
    bind_password: str = Field("", alias="PWM_BIND_PASSWORD")
    connect_timeout: float = Field(5.0, gt=0, alias="PWM_CONNECT_TIMEOUT")
    receive_timeout: float = Field(10.0, gt=0, alias="PWM_RECEIVE_TIMEOUT")
    description: str = Field("", alias="PWM_DESCRIPTION")

    # Directory layout
    search_base: str = Field(..., alias="PWM_SEARCH_BASE")
    username_attr: str = Field("sAMAccountName", alias="PWM_USERNAME_ATTR")
    password_attr: str = Field("unicodePwd", alias="PWM_PASSWORD_ATTR")
    security_question_attrs: List[str] = Field(default_factory=list, alias="PWM_SECURITY_QUESTION_ATTRS")
    security_response_attrs: List[str] = Field(default_factory=list, alias="PWM_SECURITY_RESPONSE_ATTRS")
    default_questions: List[str] = Field(default_factory=list, alias="PWM_DEFAULT_QUESTIONS")
    default_response_attrs: List[str] = Field(default_factory=list, alias="PWM_DEFAULT_RESPONSE_ATTRS")
    ignore_partial_results: bool = Field(False, alias="PWM_IGNORE_PARTIAL_RESULTS")

    # Active Directory password policy
    max_pwd_age_attr: str = Field("maxPwdAge", alias="PWM_MAX_PWD_AGE_ATTR")
    pwd_last_set_attr: str = Field("pwdLastSet", alias="PWM_PWD_LAST_SET_ATTR")
    uac_attr: str = Field("userAccountControl", alias="PWM_UAC_ATTR")
    password_warn_age_days: int = Field(0, ge=0, alias="PWM_PASSWORD_WARN_AGE_DAYS")
    max_pwd_age_refresh_seconds: int = Field(86400, ge=0, alias="PWM_MAX_PWD_AGE_REFRESH_SECONDS")

    # Logging
    log_level: str = Field("INFO", alias="PWM_LOG_LEVEL")
    log_file: str = Field("", alias="PWM_LOG_FILE")
    log_retention_days: int = Field(30, alias="PWM_LOG_RETENTION_DAYS")

    model_config = SettingsConfigDict(populate_by_name=True, frozen=True)

    def to_directory_config(self) -> DirectoryConfig:
        return DirectoryConfig(
            hosts=tuple(h.strip() for h in self.hosts if h.strip()),
            search_base=self.search_base,
            bind_dn=self.bind_dn,
            bind_password=self.bind_password,
            port=self.port,
            use_ssl=self.use_ssl,
            starttls=self.starttls,
            tls_validate=self.tls_validate,
            connect_timeout=self.connect_timeout,
            receive_timeout=self.receive_timeout,
            directory_type=self.directory_type,
            description=self.description,
            username_attr=self.username_attr,
            password_attr=self.password_attr,
            security_question_attrs=tuple(self.security_question_attrs),
            security_response_attrs=tuple(self.security_response_attrs),
            default_questions=tuple(self.default_questions),
            default_response_attrs=tuple(self.default_response_attrs),
            ignore_partial_results=self.ignore_partial_results,
            max_pwd_age_attr=self.max_pwd_age_attr,
            pwd_last_set_attr=self.pwd_last_set_attr,
            uac_attr=self.uac_attr,
            password_warn_age_days=self.password_warn_age_days,
            max_pwd_age_refresh_seconds=self.max_pwd_age_refresh_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> DirectorySettings:
    return DirectorySettings()
