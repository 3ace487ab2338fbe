"""
Plaintext credential content: the `[default]` section written to profile files
and to the active AWS credentials file.
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidContent, MissingField, ParseError

SECTION_HEADER = "[default]"

ACCESS_KEY_ID_FIELD = "aws_access_key_id"
SECRET_ACCESS_KEY_FIELD = "aws_secret_access_key"
REGION_FIELD = "region"

ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_DEFAULT_REGION = "AWS_DEFAULT_REGION"
ENV_ACTIVE_PROFILE = "ACTIVE_AWS_PROFILE"


@dataclass(frozen=True)
class CredentialContent:
    """Decrypted credential fields of a single profile."""

    access_key_id: str
    secret_access_key: str
    region: Optional[str] = None

    def validate(self):
        """
        Check that the fields can be written as `key = value` lines.

        Raises:
            InvalidContent: If a required field is empty, a region is blank, or
                any value is padded with whitespace or spans lines
        """
        for field, value in (
            (ACCESS_KEY_ID_FIELD, self.access_key_id),
            (SECRET_ACCESS_KEY_FIELD, self.secret_access_key),
        ):
            if not value or not value.strip():
                raise InvalidContent(f"{field} cannot be empty")
        if self.region is not None and not self.region.strip():
            raise InvalidContent(f"{REGION_FIELD} cannot be blank, leave it unset instead")
        for field, value in (
            (ACCESS_KEY_ID_FIELD, self.access_key_id),
            (SECRET_ACCESS_KEY_FIELD, self.secret_access_key),
            (REGION_FIELD, self.region),
        ):
            if value is None:
                continue
            # parse() splits on every str.splitlines() boundary, not only \n
            if "".join(value.splitlines()) != value:
                raise InvalidContent(f"{field} cannot contain line breaks")
            if value != value.strip():
                raise InvalidContent(f"{field} cannot start or end with whitespace")

    def to_environment(self, profile_name):
        """Map the content to the environment variables AWS tooling reads."""
        env = {
            ENV_ACCESS_KEY_ID: self.access_key_id,
            ENV_SECRET_ACCESS_KEY: self.secret_access_key,
        }
        if self.region:
            env[ENV_DEFAULT_REGION] = self.region
        env[ENV_ACTIVE_PROFILE] = profile_name
        return env


def serialize(content):
    """
    Render credential content in the AWS shared credentials format.

    Field order is fixed (id, secret, region) and the region line is only
    written when a region is set.

    Args:
        content: CredentialContent to render

    Returns:
        bytes: UTF-8 encoded profile text
    """
    lines = [
        SECTION_HEADER,
        f"{ACCESS_KEY_ID_FIELD} = {content.access_key_id}",
        f"{SECRET_ACCESS_KEY_FIELD} = {content.secret_access_key}",
    ]
    if content.region:
        lines.append(f"{REGION_FIELD} = {content.region}")
    return "\n".join(lines).encode("utf-8")


def _find_value(lines, prefix):
    for line in lines:
        if line.startswith(prefix):
            _, _, value = line.partition("=")
            return value.strip()
    return None


def parse(data):
    """
    Extract credential fields from plaintext profile content.

    Each field is taken from the first line starting with its name; the value
    is everything after the first `=`, stripped. Unrecognised lines are ignored.

    Args:
        data: Profile text as bytes or str

    Returns:
        CredentialContent

    Raises:
        MissingField: If the access key id or secret access key line is absent
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Profile content is not valid UTF-8: {e}") from e
    lines = data.splitlines()

    access_key_id = _find_value(lines, ACCESS_KEY_ID_FIELD)
    if access_key_id is None:
        raise MissingField(ACCESS_KEY_ID_FIELD)
    secret_access_key = _find_value(lines, SECRET_ACCESS_KEY_FIELD)
    if secret_access_key is None:
        raise MissingField(SECRET_ACCESS_KEY_FIELD)
    region = _find_value(lines, REGION_FIELD)

    return CredentialContent(access_key_id, secret_access_key, region or None)
