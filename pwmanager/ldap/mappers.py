"""Pure conversions between raw directory attributes and domain values.

Every reader takes an ldap3 ``raw_attributes`` mapping plus the directory
configuration and returns the mapped value or ``None`` when the directory
holds no (complete) data for it.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from ..exceptions import ConfigurationError
from .models import DirectoryConfig, Modification, SecurityChallenge, SecurityQuestion
from .utils import first_int, first_text

logger = logging.getLogger(__name__)

RawAttributes = Mapping[str, Any]


def check_challenge_config(cfg: DirectoryConfig) -> None:
    if len(cfg.security_question_attrs) != len(cfg.security_response_attrs):
        raise ConfigurationError(
            f"{len(cfg.security_question_attrs)} security question attributes configured "
            f"but {len(cfg.security_response_attrs)} response attributes"
        )
    if len(cfg.default_questions) != len(cfg.default_response_attrs):
        raise ConfigurationError(
            f"{len(cfg.default_questions)} default questions configured "
            f"but {len(cfg.default_response_attrs)} default response attributes"
        )


def challenge_attributes(cfg: DirectoryConfig) -> list[str]:
    attrs: list[str] = []
    for q, r in zip(cfg.security_question_attrs, cfg.security_response_attrs):
        attrs.extend([q, r])
    return attrs


def map_security_challenge(attrs: RawAttributes, cfg: DirectoryConfig, username: str) -> SecurityChallenge | None:
    if not cfg.security_question_attrs:
        return None
    logger.debug("Mapping the security questions for %s", username)
    questions: list[SecurityQuestion] = []
    for q_attr, r_attr in zip(cfg.security_question_attrs, cfg.security_response_attrs):
        question = first_text(attrs, q_attr)
        response = first_text(attrs, r_attr)
        # A partially configured challenge counts as none at all.
        if question is None or response is None:
            return None
        questions.append(SecurityQuestion(question, response))
    logger.debug("Found %d security questions for %s", len(questions), username)
    return SecurityChallenge(username, tuple(questions))


def map_default_security_challenge(
    attrs: RawAttributes, cfg: DirectoryConfig, username: str
) -> SecurityChallenge | None:
    if not cfg.default_questions:
        return None
    questions: list[SecurityQuestion] = []
    for text, r_attr in zip(cfg.default_questions, cfg.default_response_attrs):
        response = first_text(attrs, r_attr)
        if response is None:
            logger.warning("Default response attribute %s missing for %s", r_attr, username)
            return None
        questions.append(SecurityQuestion(text, response))
    logger.debug("Found %d default security questions for %s", len(questions), username)
    return SecurityChallenge(username, tuple(questions))


def security_challenge_modifications(challenge: SecurityChallenge, cfg: DirectoryConfig) -> list[Modification]:
    """Two REPLACE items per question, in configured attribute order."""
    check_challenge_config(cfg)
    expected = len(cfg.security_question_attrs)
    if len(challenge.questions) != expected:
        raise ConfigurationError(
            f"Security challenge for {challenge.username} has {len(challenge.questions)} "
            f"questions, {expected} attribute pairs are configured"
        )
    mods: list[Modification] = []
    for q_attr, r_attr, question in zip(cfg.security_question_attrs, cfg.security_response_attrs, challenge.questions):
        mods.append(Modification.replace(q_attr, question.question_text))
        mods.append(Modification.replace(r_attr, question.response_text))
    return mods


def map_pwd_last_set(attrs: RawAttributes, cfg: DirectoryConfig) -> int | None:
    return first_int(attrs, cfg.pwd_last_set_attr)


def map_max_pwd_age(attrs: RawAttributes, cfg: DirectoryConfig) -> int | None:
    value = first_int(attrs, cfg.max_pwd_age_attr)
    # AD stores the policy as a negative interval.
    return abs(value) if value is not None else None


def map_account_control(attrs: RawAttributes, cfg: DirectoryConfig) -> int | None:
    return first_int(attrs, cfg.uac_attr)
