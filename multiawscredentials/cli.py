"""
Command-line interface for multi-aws-credentials.
"""

import argparse
import json
import os
import shlex
import subprocess
import sys

from . import __version__
from .config import get_active_credentials_path, get_kdf_iterations, get_profiles_dir
from .content import CredentialContent
from .exceptions import (
    MultiAwsCredentialsError,
    ProfileExists,
    ProfileNotFound,
    WrongPasswordOrCorrupt,
)
from .prompt import ask, ask_new_password
from .session import get_caller_identity
from .store import ProfileStore

# Left over from another profile, these would override or mix with the new keys
STALE_ENVIRONMENT_KEYS = ("AWS_DEFAULT_REGION", "AWS_SESSION_TOKEN", "AWS_PROFILE")


def build_store(args, environ=None):
    """Create the ProfileStore selected by command-line options and environment."""
    return ProfileStore(
        get_profiles_dir(args.profiles_dir, environ),
        get_active_credentials_path(args.credentials_file, environ),
        kdf_iterations=get_kdf_iterations(environ),
    )


def resolve_content(args):
    """Fill in missing key id / secret from interactive prompts."""
    access_key_id = args.id or ask("Aws access key id").strip()
    secret_access_key = args.secret or ask("Aws access key secret").strip()
    return CredentialContent(access_key_id, secret_access_key, args.region or None)


def resolve_password(args):
    """Ask for a new password when --password was given, otherwise None."""
    return ask_new_password() if args.password else None


def read_password_if_encrypted(store, name, prompt="Password"):
    if store.is_encrypted(name):
        return ask(prompt, silent=True)
    return None


def cmd_add(store, args):
    try:
        if store.exists(args.name):
            raise ProfileExists(args.name, store.path_for(args.name))
        content = resolve_content(args)
        password = resolve_password(args)
        path = store.add(args.name, content, password)
    except ProfileExists:
        print(
            f"Error: Profile {args.name} already exists. If you want to replace it, "
            f"explicitly use the replace command\n"
            f"  multi-aws-credentials replace {args.name} <id> <secret>",
            file=sys.stderr,
        )
        return 1
    print(f"Profile {args.name} added to {path}", file=sys.stderr)
    return 0


def cmd_upsert(store, args):
    content = resolve_content(args)
    password = resolve_password(args)
    created = store.upsert(args.name, content, password)
    path = store.path_for(args.name)
    if created:
        print(f"Profile {args.name} added to {path}", file=sys.stderr)
    else:
        print(f"Profile {args.name} replaced in {path}", file=sys.stderr)
    return 0


def cmd_replace(store, args):
    if not store.exists(args.name):
        raise ProfileNotFound(args.name, store.path_for(args.name))
    content = CredentialContent(args.id, args.secret, args.region or None)
    password = resolve_password(args)
    path = store.replace(args.name, content, password)
    print(f"Profile {args.name} replaced in {path}", file=sys.stderr)
    return 0


def cmd_change(store, args):
    password = read_password_if_encrypted(store, args.name)
    active_path = store.change(args.name, password)
    print(
        f"Changed active profile in {active_path} to {args.name} in {store.path_for(args.name)}",
        file=sys.stderr,
    )
    return 0


def cmd_list(store, args):
    for name in store.list_profiles():
        print(name)
    return 0


def cmd_rename(store, args):
    new_path = store.rename(args.current_name, args.new_name, overwrite=args.force)
    print(f"Profile {args.current_name} moved to {args.new_name} as {new_path}", file=sys.stderr)
    return 0


def cmd_remove(store, args):
    path = store.remove(args.name)
    print(f"Profile {args.name} removed from {path}", file=sys.stderr)
    return 0


def cmd_encrypt(store, args):
    current_password = read_password_if_encrypted(store, args.name, "Current password")
    if current_password is not None:
        # Check the current password before asking for a new one
        store.read(args.name, current_password)
    new_password = ask_new_password("New password")
    path = store.encrypt(args.name, new_password, current_password)
    print(f"Profile {args.name} encrypted in {path}", file=sys.stderr)
    return 0


def cmd_decrypt(store, args):
    if not store.is_encrypted(args.name):
        print(f"Profile {args.name} is not encrypted", file=sys.stderr)
        return 0
    password = ask("Password", silent=True)
    path = store.decrypt(args.name, password)
    print(f"Profile {args.name} stored unencrypted in {path}", file=sys.stderr)
    return 0


def profile_environment(store, name, environ=None):
    password = None
    if store.environment_needs_password(name, environ):
        password = ask("Password", silent=True)
    return store.environment(name, password, environ)


def cmd_env(store, args):
    env = profile_environment(store, args.name)
    for key, value in env.items():
        print(f"export {key}={shlex.quote(value)}")
    return 0


def cmd_env_run(store, args):
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        print("Error: env-run needs a command to run", file=sys.stderr)
        print(f"  Usage: multi-aws-credentials env-run {args.name} -- <command>", file=sys.stderr)
        return 1

    env = dict(os.environ)
    for key in STALE_ENVIRONMENT_KEYS:
        env.pop(key, None)
    env.update(profile_environment(store, args.name))
    try:
        result = subprocess.run(command, env=env)
    except FileNotFoundError:
        print(f"Error: Command not found: {command[0]}", file=sys.stderr)
        return 127
    return result.returncode


def cmd_whoami(store, args):
    password = read_password_if_encrypted(store, args.name)
    content = store.read(args.name, password)
    identity = get_caller_identity(content)
    print(json.dumps(identity, indent=2))
    return 0


def _add_content_arguments(parser):
    parser.add_argument(
        "id",
        nargs="?",
        help="Aws access key id, optional (will read from stdin if not provided)",
    )
    parser.add_argument(
        "secret",
        nargs="?",
        help="Aws access key secret, optional (will read from stdin if not provided)",
    )
    parser.add_argument("region", nargs="?", help="Default region for the profile, optional")
    parser.add_argument(
        "--password",
        action="store_true",
        help="Reads a password from stdin to encrypt the credentials, "
        "will be requested when using the profile",
    )


def build_parser():
    parser = argparse.ArgumentParser(
        prog="multi-aws-credentials",
        description="Manage multiple AWS credential profiles and switch the active one",
        epilog="Examples:\n"
        "  multi-aws-credentials add work AKIA... secret --password\n"
        "  multi-aws-credentials change work\n"
        "  eval $(multi-aws-credentials env work)\n"
        "  multi-aws-credentials env-run work -- aws s3 ls",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--profiles-dir",
        default=None,
        help="Directory holding <name>.creds profile files "
        "(default: $MULTI_AWS_CREDENTIALS_DIR or ~/.aws)",
    )
    parser.add_argument(
        "--credentials-file",
        default=None,
        help="Credentials file receiving the active profile "
        "(default: $AWS_SHARED_CREDENTIALS_FILE or ~/.aws/credentials)",
    )
    subparsers = parser.add_subparsers(dest="command_name", metavar="<command>")
    subparsers.required = True

    add = subparsers.add_parser("add", help="Add a profile")
    add.add_argument("name", help="Profile name")
    _add_content_arguments(add)
    add.set_defaults(func=cmd_add)

    change = subparsers.add_parser("change", help="Change the current (default) profile")
    change.add_argument("name", help="Profile name")
    change.set_defaults(func=cmd_change)

    list_ = subparsers.add_parser("list", help="List profiles")
    list_.set_defaults(func=cmd_list)

    rename = subparsers.add_parser("rename", help="Rename a profile")
    rename.add_argument("current_name", metavar="current-name", help="Current profile name")
    rename.add_argument("new_name", metavar="new-name", help="New profile name")
    rename.add_argument(
        "--force", action="store_true", help="Overwrite new-name if it already exists"
    )
    rename.set_defaults(func=cmd_rename)

    upsert = subparsers.add_parser(
        "upsert", help="Add a profile if it doesn't exist, otherwise replace it"
    )
    upsert.add_argument("name", help="Profile name")
    _add_content_arguments(upsert)
    upsert.set_defaults(func=cmd_upsert)

    replace = subparsers.add_parser("replace", help="Replace a profile")
    replace.add_argument("name", metavar="current-name", help="Current profile name")
    replace.add_argument("id", metavar="new-id", help="New access key id")
    replace.add_argument("secret", metavar="new-secret", help="New access key secret")
    replace.add_argument("region", nargs="?", help="New default region, optional")
    replace.add_argument(
        "--password",
        action="store_true",
        help="Reads a password from stdin to encrypt the credentials",
    )
    replace.set_defaults(func=cmd_replace)

    remove = subparsers.add_parser("remove", help="Remove a profile")
    remove.add_argument("name", help="Profile name")
    remove.set_defaults(func=cmd_remove)

    encrypt = subparsers.add_parser(
        "encrypt", help="Encrypt a profile with a password (re-encrypts if already encrypted)"
    )
    encrypt.add_argument("name", help="Profile name")
    encrypt.set_defaults(func=cmd_encrypt)

    decrypt = subparsers.add_parser("decrypt", help="Store an encrypted profile unencrypted")
    decrypt.add_argument("name", help="Profile name")
    decrypt.set_defaults(func=cmd_decrypt)

    env = subparsers.add_parser(
        "env", help="Outputs a profile as shell compatible variable exports, for use with eval"
    )
    env.add_argument("name", help="Profile name")
    env.set_defaults(func=cmd_env)

    env_run = subparsers.add_parser(
        "env-run", help="Run a command with a profile's credentials in its environment"
    )
    env_run.add_argument("name", help="Profile name")
    env_run.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    env_run.set_defaults(func=cmd_env_run)

    whoami = subparsers.add_parser(
        "whoami", help="Show the AWS identity behind a profile (calls STS GetCallerIdentity)"
    )
    whoami.add_argument("name", help="Profile name")
    whoami.set_defaults(func=cmd_whoami)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        store = build_store(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return args.func(store, args)
    except WrongPasswordOrCorrupt as e:
        print("Error: Failed to decrypt profile", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        return 1
    except MultiAwsCredentialsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
