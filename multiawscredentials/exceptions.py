"""
Error types raised by the profile store, content model and encryption codec.
"""


class MultiAwsCredentialsError(Exception):
    """Base class for all errors raised by multi-aws-credentials."""


class InvalidProfileName(MultiAwsCredentialsError):
    def __init__(self, name, reason):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid profile name {name!r}: {reason}")


class ProfileNotFound(MultiAwsCredentialsError):
    def __init__(self, name, path):
        self.name = name
        self.path = path
        super().__init__(f"Profile {name} not found in {path}")


class ProfileExists(MultiAwsCredentialsError):
    def __init__(self, name, path):
        self.name = name
        self.path = path
        super().__init__(f"Profile {name} already exists in {path}")


class PasswordRequired(MultiAwsCredentialsError):
    def __init__(self, name):
        self.name = name
        super().__init__(f"Profile {name} is encrypted and a password is required to read it")


class InvalidContent(MultiAwsCredentialsError):
    """Credential fields that cannot be written to a profile file."""


class ParseError(MultiAwsCredentialsError):
    """Plaintext profile content could not be parsed."""


class MissingField(ParseError):
    def __init__(self, field):
        self.field = field
        super().__init__(f"Profile content is missing the {field} field")


class DecryptError(MultiAwsCredentialsError):
    """An encrypted profile could not be decrypted."""


class NotAnEnvelope(DecryptError):
    def __init__(self):
        super().__init__("Data is not an encrypted profile (missing ENCRYPTED| prefix)")


class MalformedEnvelope(DecryptError):
    """The envelope is tagged but its record or encodings are invalid."""


class WrongPasswordOrCorrupt(DecryptError):
    """
    Decryption failed.

    For legacy CBC envelopes this cannot tell a wrong password apart from a
    damaged file, since the format carries no integrity check.
    """


class AuthenticationFailed(WrongPasswordOrCorrupt):
    """The authentication tag of a version 2 envelope did not verify."""


class PromptAborted(MultiAwsCredentialsError):
    """Interactive input ended before a value was read."""


class CredentialCheckFailed(MultiAwsCredentialsError):
    """AWS rejected the credentials stored in a profile."""
