"""
boto3 helpers for checking the credentials stored in a profile.
"""

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import CredentialCheckFailed


def create_session(content):
    """
    Create a boto3 session from stored credential content.

    Args:
        content: CredentialContent of a profile

    Returns:
        boto3.Session using the profile's keys and region
    """
    return boto3.Session(
        aws_access_key_id=content.access_key_id,
        aws_secret_access_key=content.secret_access_key,
        region_name=content.region,
    )


def get_caller_identity(content):
    """
    Ask STS who the credentials belong to.

    Returns:
        dict: Account, Arn and UserId of the caller

    Raises:
        CredentialCheckFailed: If AWS rejects the credentials or cannot be reached
    """
    try:
        response = create_session(content).client("sts").get_caller_identity()
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code")
        error_msg = e.response.get("Error", {}).get("Message", str(e))
        if error_code in ("InvalidClientTokenId", "SignatureDoesNotMatch"):
            raise CredentialCheckFailed(
                f"AWS rejected the stored credentials ({error_code})\n"
                f"  The access key may have been deleted, deactivated or mistyped.\n"
                f"  To fix: replace the profile with a valid key pair"
            ) from e
        raise CredentialCheckFailed(f"STS GetCallerIdentity failed: {error_msg}") from e
    except BotoCoreError as e:
        raise CredentialCheckFailed(f"Could not reach AWS STS: {e}") from e

    return {
        "Account": response["Account"],
        "Arn": response["Arn"],
        "UserId": response["UserId"],
    }
