"""
Named credential profiles stored as <name>.creds files, plus the active profile
mirrored into the AWS shared credentials file.

The store is a plain API: callers resolve every value (including passwords)
before calling it, and failures are raised as typed exceptions.
"""

import enum
import os
from pathlib import Path

from . import crypto
from .content import (
    ENV_ACCESS_KEY_ID,
    ENV_ACTIVE_PROFILE,
    ENV_DEFAULT_REGION,
    ENV_SECRET_ACCESS_KEY,
    parse,
    serialize,
)
from .exceptions import (
    InvalidProfileName,
    PasswordRequired,
    ProfileExists,
    ProfileNotFound,
)

PROFILE_SUFFIX = ".creds"


class ProfileState(enum.Enum):
    ABSENT = "absent"
    PLAINTEXT = "plaintext"
    ENCRYPTED = "encrypted"


def validate_profile_name(name):
    """
    Reject names that cannot be used safely as a file name stem.

    Raises:
        InvalidProfileName: If the name is empty, a dot entry, padded with
            whitespace or contains a path separator or NUL
    """
    if not isinstance(name, str) or not name:
        raise InvalidProfileName(name, "name cannot be empty")
    if name in (".", ".."):
        raise InvalidProfileName(name, "name cannot be '.' or '..'")
    if name != name.strip():
        raise InvalidProfileName(name, "name cannot start or end with whitespace")
    separators = {"/", "\\", "\0", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    for sep in separators:
        if sep in name:
            raise InvalidProfileName(name, f"name cannot contain {sep!r}")
    return name


def _already_exported(name, environ):
    return bool(
        environ.get(ENV_ACTIVE_PROFILE) == name
        and environ.get(ENV_ACCESS_KEY_ID)
        and environ.get(ENV_SECRET_ACCESS_KEY)
    )


def write_secure_file(path, data):
    """Write bytes to path with 0600 permissions, creating parent directories."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)

    # Create with restrictive permissions up front instead of chmod'ing afterwards
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    # The mode argument is ignored when the file already exists
    os.fchmod(fd, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)


class ProfileStore:
    """
    Profile files in one directory and the active credentials file.

    Args:
        profiles_dir: Directory holding <name>.creds files
        active_path: AWS shared credentials file receiving the active profile
        kdf_iterations: PBKDF2 iterations for newly encrypted profiles
    """

    def __init__(self, profiles_dir, active_path, kdf_iterations=crypto.DEFAULT_KDF_ITERATIONS):
        self.profiles_dir = os.fspath(profiles_dir)
        self.active_path = os.fspath(active_path)
        self.kdf_iterations = kdf_iterations

    def path_for(self, name):
        validate_profile_name(name)
        return os.path.join(self.profiles_dir, f"{name}{PROFILE_SUFFIX}")

    def exists(self, name):
        return os.path.isfile(self.path_for(name))

    def list_profiles(self):
        """Return the sorted names of all stored profiles."""
        if not os.path.isdir(self.profiles_dir):
            return []
        names = []
        for entry in os.listdir(self.profiles_dir):
            if entry.endswith(PROFILE_SUFFIX) and len(entry) > len(PROFILE_SUFFIX):
                if os.path.isfile(os.path.join(self.profiles_dir, entry)):
                    names.append(entry[: -len(PROFILE_SUFFIX)])
        return sorted(names)

    def read_raw(self, name):
        """Return the exact bytes stored for a profile."""
        path = self.path_for(name)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise ProfileNotFound(name, path) from None

    def state(self, name):
        try:
            raw = self.read_raw(name)
        except ProfileNotFound:
            return ProfileState.ABSENT
        return ProfileState.ENCRYPTED if crypto.is_envelope(raw) else ProfileState.PLAINTEXT

    def is_encrypted(self, name):
        """
        Check whether a stored profile needs a password to be read.

        Raises:
            ProfileNotFound: If the profile does not exist
        """
        return crypto.is_envelope(self.read_raw(name))

    def read_plaintext(self, name, password=None):
        """
        Return the plaintext bytes of a profile, decrypting when needed.

        Raises:
            ProfileNotFound: If the profile does not exist
            PasswordRequired: If it is encrypted and no password was given
            DecryptError: If decryption fails
        """
        raw = self.read_raw(name)
        if not crypto.is_envelope(raw):
            return raw
        if password is None:
            raise PasswordRequired(name)
        return crypto.decrypt(password, raw)

    def read(self, name, password=None):
        """Return the parsed CredentialContent of a profile."""
        return parse(self.read_plaintext(name, password))

    def _render(self, content, password):
        content.validate()
        data = serialize(content)
        if password is not None:
            data = crypto.encrypt(password, data, iterations=self.kdf_iterations)
        return data

    def add(self, name, content, password=None):
        """
        Create a new profile; encrypted when a password is given.

        Raises:
            ProfileExists: If a profile with this name is already stored
        """
        path = self.path_for(name)
        if os.path.exists(path):
            raise ProfileExists(name, path)
        write_secure_file(path, self._render(content, password))
        return path

    def upsert(self, name, content, password=None):
        """
        Create or overwrite a profile. The password alone decides whether the
        result is encrypted, whatever the previous state was.

        Returns:
            bool: True if the profile was created, False if it was replaced
        """
        path = self.path_for(name)
        data = self._render(content, password)
        created = not os.path.exists(path)
        write_secure_file(path, data)
        return created

    def replace(self, name, content, password=None):
        """
        Overwrite an existing profile.

        Raises:
            ProfileNotFound: If the profile does not exist
        """
        path = self.path_for(name)
        if not os.path.exists(path):
            raise ProfileNotFound(name, path)
        write_secure_file(path, self._render(content, password))
        return path

    def encrypt(self, name, new_password, current_password=None):
        """
        Encrypt a profile under new_password.

        An already encrypted profile is decrypted with current_password first
        and re-encrypted with a fresh salt and IV.
        """
        path = self.path_for(name)
        plaintext = self.read_plaintext(name, current_password)
        parse(plaintext)
        write_secure_file(
            path, crypto.encrypt(new_password, plaintext, iterations=self.kdf_iterations)
        )
        return path

    def decrypt(self, name, password):
        """Store a profile as plaintext again. A no-op for plaintext profiles."""
        path = self.path_for(name)
        raw = self.read_raw(name)
        if not crypto.is_envelope(raw):
            return path
        plaintext = crypto.decrypt(password, raw)
        parse(plaintext)
        write_secure_file(path, plaintext)
        return path

    def change(self, name, password=None):
        """
        Make a profile the active one by copying its plaintext content into the
        shared credentials file. Nothing is written unless the content decrypts
        and parses.
        """
        plaintext = self.read_plaintext(name, password)
        parse(plaintext)
        write_secure_file(self.active_path, plaintext)
        return self.active_path

    def get_active(self):
        """Return the content of the active credentials file, or None if absent."""
        try:
            with open(self.active_path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            return None
        return parse(data)

    def set_active(self, content):
        """Write content directly to the active credentials file."""
        content.validate()
        write_secure_file(self.active_path, serialize(content))
        return self.active_path

    def rename(self, current_name, new_name, overwrite=False):
        """
        Move a profile to a new name, keeping its bytes (and encryption) as is.

        Raises:
            ProfileNotFound: If current_name does not exist
            ProfileExists: If new_name exists and overwrite is False
        """
        new_path = self.path_for(new_name)
        raw = self.read_raw(current_name)
        if current_name == new_name:
            return new_path
        if os.path.exists(new_path) and not overwrite:
            raise ProfileExists(new_name, new_path)
        write_secure_file(new_path, raw)
        os.unlink(self.path_for(current_name))
        return new_path

    def remove(self, name):
        """
        Delete a profile.

        Raises:
            ProfileNotFound: If the profile does not exist
        """
        path = self.path_for(name)
        try:
            os.unlink(path)
        except FileNotFoundError:
            raise ProfileNotFound(name, path) from None
        return path

    def environment(self, name, password=None, environ=None):
        """
        Return the environment variables exporting a profile.

        When environ shows the profile is already active and exported, its
        current values are reused without reading or decrypting the file.
        """
        environ = os.environ if environ is None else environ
        validate_profile_name(name)
        if _already_exported(name, environ):
            env = {
                ENV_ACCESS_KEY_ID: environ[ENV_ACCESS_KEY_ID],
                ENV_SECRET_ACCESS_KEY: environ[ENV_SECRET_ACCESS_KEY],
            }
            if environ.get(ENV_DEFAULT_REGION):
                env[ENV_DEFAULT_REGION] = environ[ENV_DEFAULT_REGION]
            env[ENV_ACTIVE_PROFILE] = name
            return env
        return self.read(name, password).to_environment(name)

    def environment_needs_password(self, name, environ=None):
        """True if environment() would have to decrypt the profile file."""
        environ = os.environ if environ is None else environ
        if _already_exported(name, environ):
            return False
        return self.is_encrypted(name)
