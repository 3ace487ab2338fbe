"""
multi-aws-credentials: keep several AWS credential profiles and switch between them.

Each profile is stored as ~/.aws/<name>.creds, either as plaintext in the AWS
shared credentials format or encrypted with a password. Changing profile copies
the (decrypted) content into ~/.aws/credentials, where the AWS CLI and SDKs
pick it up.

Key features:
- Add, replace, upsert, rename and remove named profiles
- Optional password encryption (PBKDF2-SHA256 + AES-256-GCM) of any profile
- Shell exports or a wrapped command for a profile's credentials
- Reads profiles encrypted by earlier releases (SHA-256 + AES-256-CBC)
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .content import CredentialContent, parse, serialize
from .crypto import decrypt, encrypt, is_envelope
from .exceptions import (
    AuthenticationFailed,
    CredentialCheckFailed,
    DecryptError,
    InvalidContent,
    InvalidProfileName,
    MalformedEnvelope,
    MissingField,
    MultiAwsCredentialsError,
    NotAnEnvelope,
    ParseError,
    PasswordRequired,
    ProfileExists,
    ProfileNotFound,
    PromptAborted,
    WrongPasswordOrCorrupt,
)
from .session import create_session, get_caller_identity
from .store import ProfileState, ProfileStore, validate_profile_name

__all__ = [
    # Profile store
    "ProfileStore",
    "ProfileState",
    "validate_profile_name",
    # Content model
    "CredentialContent",
    "serialize",
    "parse",
    # Encryption
    "encrypt",
    "decrypt",
    "is_envelope",
    # AWS session helpers
    "create_session",
    "get_caller_identity",
    # Errors
    "MultiAwsCredentialsError",
    "InvalidProfileName",
    "ProfileNotFound",
    "ProfileExists",
    "PasswordRequired",
    "InvalidContent",
    "ParseError",
    "MissingField",
    "DecryptError",
    "NotAnEnvelope",
    "MalformedEnvelope",
    "WrongPasswordOrCorrupt",
    "AuthenticationFailed",
    "PromptAborted",
    "CredentialCheckFailed",
]
