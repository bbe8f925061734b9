"""Minimal GitHub OAuth client.

Builds the authorization URL and performs the two server-side calls of
the web flow: exchanging the callback `code` for an access token and
fetching the user's profile. The caller owns `state` storage (a cookie in
this app).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict
from urllib.parse import urlencode

# Small indirection to ease monkeypatching in tests
import requests as http

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
USER_URL = "https://api.github.com/user"


class GitHubAuthError(Exception):
    """Raised when GitHub rejects the code or the profile cannot be read."""


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str]):
    return http.post(url, data=data, headers=headers, timeout=10)


def http_get(url: str, headers: Dict[str, str]):
    return http.get(url, headers=headers, timeout=10)


@dataclass(frozen=True)
class GitHubConfig:
    client_id: str
    client_secret: str
    redirect_uri: str
    scope: str = "read:user"


class GitHubOAuthClient:
    def __init__(self, config: GitHubConfig):
        self.cfg = config

    def build_authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self.cfg.client_id,
            "redirect_uri": self.cfg.redirect_uri,
            "scope": self.cfg.scope,
            "state": state,
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    def exchange_code(self, *, code: str) -> str:
        """Exchange an authorization code for an access token.

        GitHub answers 200 even for a bad code, with an `error` field, so
        both cases raise `GitHubAuthError`.
        """
        data = {
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "code": code,
            "redirect_uri": self.cfg.redirect_uri,
        }
        headers = {"Accept": "application/json"}
        try:
            resp = http_post(TOKEN_URL, data=data, headers=headers)
        except http.RequestException as exc:
            raise GitHubAuthError("token_request_failed") from exc
        if resp.status_code != 200:
            raise GitHubAuthError("token_exchange_failed")
        body = resp.json()
        token = body.get("access_token")
        if not token:
            raise GitHubAuthError(body.get("error") or "token_exchange_failed")
        return token

    def fetch_user(self, *, access_token: str) -> dict:
        """Return the GitHub profile (`id`, `login`, `name`, ...)."""
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {access_token}",
        }
        try:
            resp = http_get(USER_URL, headers=headers)
        except http.RequestException as exc:
            raise GitHubAuthError("profile_request_failed") from exc
        if resp.status_code != 200:
            raise GitHubAuthError("profile_fetch_failed")
        profile = resp.json()
        if not profile.get("id") or not profile.get("login"):
            raise GitHubAuthError("profile_incomplete")
        return profile
