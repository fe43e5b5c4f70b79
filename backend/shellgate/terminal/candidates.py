"""
Shellgate - Credential candidates

Turns a connection profile into the ordered list of credentials the session
bridge will try.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple
from loguru import logger

from shellgate.core.exceptions import (
    DecryptError,
    NoAuthMethodConfigured,
    NoCredentialConfigured,
    NoUsableKey,
)
from shellgate.schemas.profile import AuthMethod, ConnectionProfile, KeyMaterial, KeySource
from shellgate.services.credential_store import CredentialStore
from shellgate.terminal.key_normalizer import normalize_private_key


@dataclass(frozen=True)
class CredentialCandidate:
    """One concrete way to authenticate. Never persisted."""
    password: Optional[str] = None
    private_key: Optional[str] = None
    passphrase: Optional[str] = None
    label: str = ""

    @property
    def is_key(self) -> bool:
        return self.private_key is not None

    def __repr__(self):
        kind = "key" if self.is_key else "password"
        return f"<CredentialCandidate {kind} {self.label}>"


@dataclass(frozen=True)
class CandidatePlan:
    method: AuthMethod
    candidates: Tuple[CredentialCandidate, ...]


def choose_method(profile: ConnectionProfile, requested: Optional[str]) -> Optional[AuthMethod]:
    """Honour the client's hint if the profile can satisfy it, else use the declared method"""
    if requested == AuthMethod.PASSWORD.value and profile.password:
        return AuthMethod.PASSWORD
    if requested == AuthMethod.KEY.value and profile.has_key_source:
        return AuthMethod.KEY
    if requested and requested not in (AuthMethod.PASSWORD.value, AuthMethod.KEY.value):
        logger.warning(f"Ignoring unknown auth method hint '{requested}'")
    return profile.auth_method


def order_keys(keys: List[KeyMaterial]) -> List[KeyMaterial]:
    """Primary keys first, original order otherwise"""
    return sorted(keys, key=lambda k: not k.is_primary)


def _ensure_pem_text(content: str) -> str:
    content = content.strip()
    if not content.endswith("\n"):
        content += "\n"
    return content


def _load_key(store: CredentialStore, key: KeyMaterial) -> Optional[CredentialCandidate]:
    passphrase = store.reveal(key.passphrase)

    if key.source == KeySource.UPLOADED and key.content:
        content = store.reveal(key.content)
        if not content:
            return None
        content = _ensure_pem_text(content)
    elif key.source == KeySource.FILE and key.file_path:
        content = Path(key.file_path).read_text(encoding="utf-8")
    else:
        return None

    return CredentialCandidate(
        private_key=normalize_private_key(content, passphrase),
        passphrase=passphrase or None,
        label=key.id,
    )


def _key_candidates(profile: ConnectionProfile, store: CredentialStore) -> List[CredentialCandidate]:
    if profile.ssh_keys:
        sources = order_keys(list(profile.ssh_keys))
    else:
        # Legacy single key: inline content wins over a file path
        sources = []
        if profile.private_key_content:
            sources.append(KeyMaterial(id="legacy", source=KeySource.UPLOADED,
                                       content=profile.private_key_content,
                                       passphrase=profile.passphrase))
        elif profile.private_key_path:
            sources.append(KeyMaterial(id="legacy-file", source=KeySource.FILE,
                                       file_path=profile.private_key_path,
                                       passphrase=profile.passphrase))

    candidates = []
    for key in sources:
        try:
            candidate = _load_key(store, key)
        except DecryptError as e:
            logger.error(f"Error decrypting SSH key {key.id} for connection {profile.id}: {e}")
            continue
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading SSH key {key.id} for connection {profile.id}: {e}")
            continue

        if candidate is None:
            logger.warning(f"Skipping SSH key {key.id} for connection {profile.id}: no key material")
            continue
        candidates.append(candidate)

    return candidates


def build_candidates(
    profile: ConnectionProfile,
    store: CredentialStore,
    requested_method: Optional[str] = None,
) -> CandidatePlan:
    """
    Build the ordered credential list for a profile.

    Raises a ConfigurationError subclass when nothing usable is configured.
    """
    method = choose_method(profile, requested_method)

    if method == AuthMethod.PASSWORD:
        try:
            password = store.reveal(profile.password)
        except DecryptError as e:
            logger.error(f"Error decrypting password for connection {profile.id}: {e}")
            password = None
        if not password:
            raise NoCredentialConfigured()
        return CandidatePlan(method, (CredentialCandidate(password=password, label="password"),))

    if method == AuthMethod.KEY:
        if not profile.has_key_source:
            raise NoUsableKey("No SSH key configured.")
        candidates = _key_candidates(profile, store)
        if not candidates:
            raise NoUsableKey()
        logger.debug(f"Connection {profile.id}: {len(candidates)} usable SSH key(s)")
        return CandidatePlan(method, tuple(candidates))

    raise NoAuthMethodConfigured()
