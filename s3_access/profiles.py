from __future__ import annotations
"""Credential profile models and persistence."""
from dataclasses import dataclass, field
import json
from pathlib import Path
from typing import Optional

import boto3
import keyring
from keyring.errors import KeyringError

from .models import Credential


@dataclass
class CredentialProfile:
    """Represents a saved set of object store credentials."""

    name: str
    region: str
    access_key: str
    secret_key: str = field(repr=False)
    schema: str = "https"
    session_token: str = field(default="", repr=False)

    def credential(self) -> Credential:
        return Credential(
            access_key=self.access_key,
            secret_key=self.secret_key,
            session_token=self.session_token,
        )


def session_token_entry(profile_name: str) -> str:
    """Keychain entry name holding the session token of ``profile_name``."""
    return f"{profile_name}:session-token"


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = "s3-access"):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name:
            return
        if not secret_key:
            self.delete_secret(profile_name)
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError:
            return

    def delete_secret(self, profile_name: str) -> None:
        if not profile_name:
            return
        try:
            keyring.delete_password(self._service_name, profile_name)
        except KeyringError:
            return


class ProfileStorage:
    """JSON-backed store for credential profiles; secrets stay in the keychain."""

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3access_profiles.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def load(self) -> list[CredentialProfile]:
        data = self._read_data()
        profiles: list[CredentialProfile] = []
        sanitized: list[dict[str, str]] = []
        saw_plaintext = False
        for entry in data:
            try:
                name = entry["name"]
                region = entry["region"]
                access_key = entry["access_key"]
            except (KeyError, TypeError):
                continue
            schema = entry.get("schema") or "https"
            secret_key = entry.get("secret_key", "")
            if secret_key:
                saw_plaintext = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            session_token = entry.get("session_token", "")
            if session_token:
                saw_plaintext = True
                self._keychain.set_secret(session_token_entry(name), session_token)
            else:
                session_token = self._keychain.get_secret(session_token_entry(name))
            profiles.append(
                CredentialProfile(
                    name=name,
                    region=region,
                    access_key=access_key,
                    secret_key=secret_key,
                    schema=schema,
                    session_token=session_token,
                )
            )
            sanitized.append(self._public_fields(profiles[-1]))
        if saw_plaintext:
            self._write_data(sanitized)
        return profiles

    def get(self, name: str) -> CredentialProfile:
        for profile in self.load():
            if profile.name == name:
                return profile
        raise KeyError(f"Profile '{name}' does not exist")

    def save(self, profiles: list[CredentialProfile]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = []
        for profile in profiles:
            self._keychain.set_secret(profile.name, profile.secret_key)
            self._keychain.set_secret(session_token_entry(profile.name), profile.session_token)
            data.append(self._public_fields(profile))
        existing_names = {entry.get("name") for entry in self._read_data() if isinstance(entry, dict)}
        current_names = {profile.name for profile in profiles}
        for name in existing_names - current_names:
            if isinstance(name, str) and name:
                self._keychain.delete_secret(name)
                self._keychain.delete_secret(session_token_entry(name))
        self._write_data(data)

    def upsert(self, profile: CredentialProfile) -> None:
        profiles = [existing for existing in self.load() if existing.name != profile.name]
        profiles.append(profile)
        self.save(profiles)

    def remove(self, name: str) -> None:
        profiles = self.load()
        remaining = [profile for profile in profiles if profile.name != name]
        if len(remaining) == len(profiles):
            raise KeyError(f"Profile '{name}' does not exist")
        self.save(remaining)

    @staticmethod
    def _public_fields(profile: CredentialProfile) -> dict[str, str]:
        return {
            "name": profile.name,
            "region": profile.region,
            "access_key": profile.access_key,
            "schema": profile.schema,
        }

    def _read_data(self) -> list:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    def _write_data(self, data: list[dict[str, str]]) -> None:
        self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def credential_from_environment(session=None) -> Optional[Credential]:
    """Resolve credentials through the default AWS provider chain."""

    session = session or boto3.Session()
    resolved = session.get_credentials()
    if resolved is None:
        return None
    frozen = resolved.get_frozen_credentials()
    if not frozen.access_key or not frozen.secret_key:
        return None
    return Credential(
        access_key=frozen.access_key,
        secret_key=frozen.secret_key,
        session_token=frozen.token or "",
    )
