"""Credential resolution for the Telegraph publishing account."""

from __future__ import annotations

from os import environ
from typing import Mapping

from ...errors import ConfigError
from ...settings import TelegraphSettings
from ..base import PageAccount


class TelegraphCredentialStore:
    """Resolves the default publishing account from settings or the environment."""

    def __init__(
        self,
        settings: TelegraphSettings,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings
        self._env = env if env is not None else environ

    def load_token(self) -> str:
        token = self._settings.access_token or self._env.get(self._settings.token_env)
        if not token:
            raise ConfigError(self._settings.token_env)
        return token

    def load_account(self) -> PageAccount:
        """Return the account every page is published under."""
        return PageAccount(
            access_token=self.load_token(),
            short_name=self._settings.short_name,
            author_name=self._settings.author_name,
            author_url=self._settings.author_url,
        )


__all__ = ["TelegraphCredentialStore"]
