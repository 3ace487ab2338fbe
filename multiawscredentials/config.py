"""
Resolution of file locations and settings from arguments and the environment.
"""

import os

from .crypto import DEFAULT_KDF_ITERATIONS

PROFILES_DIR_ENV = "MULTI_AWS_CREDENTIALS_DIR"
CREDENTIALS_FILE_ENV = "AWS_SHARED_CREDENTIALS_FILE"
KDF_ITERATIONS_ENV = "MULTI_AWS_CREDENTIALS_KDF_ITERATIONS"


def get_aws_dir():
    """Get the AWS configuration directory."""
    return os.path.expanduser("~/.aws")


def get_profiles_dir(override=None, environ=None):
    """
    Get the directory holding the <name>.creds profile files.

    Args:
        override: Explicit directory (e.g. from --profiles-dir)
        environ: Environment mapping, defaults to os.environ

    Returns:
        str: Absolute directory path
    """
    environ = os.environ if environ is None else environ
    path = override or environ.get(PROFILES_DIR_ENV) or get_aws_dir()
    return os.path.abspath(os.path.expanduser(path))


def get_active_credentials_path(override=None, environ=None):
    """
    Get the AWS shared credentials file that mirrors the active profile.

    Honours AWS_SHARED_CREDENTIALS_FILE so the file stays the one the AWS CLI
    and SDKs read.
    """
    environ = os.environ if environ is None else environ
    path = (
        override
        or environ.get(CREDENTIALS_FILE_ENV)
        or os.path.join(get_aws_dir(), "credentials")
    )
    return os.path.abspath(os.path.expanduser(path))


def get_kdf_iterations(environ=None):
    """
    Get the PBKDF2 iteration count used for new envelopes.

    Raises:
        ValueError: If the environment value is not a positive integer
    """
    environ = os.environ if environ is None else environ
    value = environ.get(KDF_ITERATIONS_ENV)
    if not value:
        return DEFAULT_KDF_ITERATIONS
    try:
        iterations = int(value)
    except ValueError:
        raise ValueError(
            f"{KDF_ITERATIONS_ENV} must be a positive integer, got {value!r}"
        ) from None
    if iterations < 1:
        raise ValueError(f"{KDF_ITERATIONS_ENV} must be a positive integer, got {value!r}")
    return iterations
