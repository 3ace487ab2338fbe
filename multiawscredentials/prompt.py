"""
Interactive input collection. Prompts go to stderr so stdout stays parseable.
"""

import getpass
import sys

from .exceptions import PromptAborted


def ask(prompt, silent=False, stream=None):
    """
    Read one value from the terminal.

    Args:
        prompt: Label shown to the user, ": " is appended
        silent: If True, typed characters are not echoed (passwords)
        stream: Where the prompt is written, defaults to sys.stderr

    Returns:
        str: The value without its trailing newline

    Raises:
        PromptAborted: If input ends before a line is read
    """
    stream = sys.stderr if stream is None else stream
    label = f"{prompt}: "
    if silent:
        try:
            return getpass.getpass(label, stream=stream)
        except EOFError:
            raise PromptAborted(f"No input received for {prompt}") from None

    stream.write(label)
    stream.flush()
    line = sys.stdin.readline()
    if not line:
        raise PromptAborted(f"No input received for {prompt}")
    return line.rstrip("\r\n")


def ask_new_password(prompt="Password", stream=None):
    """Ask for a password twice and require both entries to match."""
    password = ask(prompt, silent=True, stream=stream)
    confirmation = ask(f"Confirm {prompt.lower()}", silent=True, stream=stream)
    if password != confirmation:
        raise PromptAborted("Passwords do not match")
    if not password:
        raise PromptAborted("Password cannot be empty")
    return password
