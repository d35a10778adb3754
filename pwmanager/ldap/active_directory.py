from __future__ import annotations

import enum
import logging
import threading
import time
from typing import Callable

from .base import BaseLdapServer
from .mappers import map_account_control, map_max_pwd_age, map_pwd_last_set
from .models import DirectoryConfig, Modification, PasswordWarningInfo
from .utils import (
    WIN32_TICKS_PER_SECOND,
    days_to_win32_interval,
    encode_ad_password,
    epoch_millis_to_win32,
    filetime_to_dt_str,
    is_account_disabled,
    password_never_expires,
)

logger = logging.getLogger(__name__)


class CacheState(enum.Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


class MaxPwdAgeCache:
    """Single-value read-through cache that expires after `refresh_seconds`.

    Only one caller runs the loader at a time; concurrent callers wait on the
    lock and then see the refreshed value.
    """

    def __init__(self, refresh_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.refresh_seconds = float(refresh_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._value: int | None = None
        self._refreshed_at: float | None = None

    def state(self, now: float) -> CacheState:
        if self._refreshed_at is None:
            return CacheState.EMPTY
        if now - self._refreshed_at > self.refresh_seconds:
            return CacheState.STALE
        return CacheState.FRESH

    def get(self, loader: Callable[[], int | None]) -> int | None:
        with self._lock:
            now = self._clock()
            if self.state(now) is CacheState.FRESH:
                logger.debug("Using cached max password age")
                return self._value

            value = loader()
            if value is None:
                # Nothing stored; the next call asks the directory again.
                return None
            self._value = value
            self._refreshed_at = now
            logger.debug("Max password age: %s", value)
            return value


def password_warning(now: int, last_set: int, max_age: int, warn_window: int) -> PasswordWarningInfo:
    """Warning decision in Win32 units; the boundary itself warns."""
    age = now - last_set
    warn = now >= last_set + max_age - warn_window
    return PasswordWarningInfo(age_since_change=age // WIN32_TICKS_PER_SECOND, warn=warn)


class ActiveDirectoryServer(BaseLdapServer):
    def __init__(self, cfg: DirectoryConfig, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__(cfg)
        self.win32_password_warn_age = days_to_win32_interval(cfg.password_warn_age_days)
        self.max_pwd_age_cache = MaxPwdAgeCache(cfg.max_pwd_age_refresh_seconds, clock=clock)

    def set_password(self, username: str, password: str) -> None:
        encoded = encode_ad_password(password)
        self.modify(username, [Modification.replace(self.cfg.password_attr, encoded)])
        logger.info("Password replaced for %s on %s", username, self.description)

    def current_win32_time(self) -> int:
        return epoch_millis_to_win32(int(time.time() * 1000))

    def _load_max_pwd_age(self) -> int | None:
        logger.debug("Getting the max password age from %s", self.cfg.search_base)
        attrs = self.read_base_entry([self.cfg.max_pwd_age_attr])
        value = map_max_pwd_age(attrs or {}, self.cfg)
        if value is None:
            logger.debug("No %s attribute found", self.cfg.max_pwd_age_attr)
        return value

    def get_max_pwd_age(self) -> int | None:
        return self.max_pwd_age_cache.get(self._load_max_pwd_age)

    def get_password_warning_info(self, username: str) -> PasswordWarningInfo | None:
        attrs = self.lookup(username, [self.cfg.pwd_last_set_attr, self.cfg.uac_attr])
        last_set = map_pwd_last_set(attrs, self.cfg)
        if last_set is None or last_set <= 0:
            logger.debug("pwdLastSet = %s for %s, no warning info", last_set, username)
            return None
        uac = map_account_control(attrs, self.cfg)
        if is_account_disabled(uac):
            logger.debug("Account %s is disabled", username)
        if password_never_expires(uac):
            logger.debug("Password of %s never expires", username)
            return None

        max_age = self.get_max_pwd_age()
        if not max_age:
            logger.debug("No max password age policy, no warning info for %s", username)
            return None

        now = self.current_win32_time()
        info = password_warning(now, last_set, max_age, self.win32_password_warn_age)
        logger.debug(
            "Current Win32 time: %d, password last set: %d (%s), password age: %ds, warn: %s",
            now, last_set, filetime_to_dt_str(last_set), info.age_since_change, info.warn,
        )
        return info
