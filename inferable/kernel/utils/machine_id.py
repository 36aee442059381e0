"""Deterministic machine identifier derivation.

The control plane attributes every call to a machine. When no explicit id is
configured the id is derived from the host name and interpreter platform, so
two clients started on the same host (and Python build) report the same id.
"""

import hashlib
import platform
import random
import socket
import string

MACHINE_ID_PREFIX = "py"
DEFAULT_MACHINE_ID_LENGTH = 8


def host_fingerprint() -> str:
    """Return a SHA-256 hex digest of host name, architecture, OS and Python version."""
    raw = (
        socket.gethostname()
        + platform.machine()
        + platform.system()
        + platform.python_version()
    )
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def generate_machine_id(length: int = DEFAULT_MACHINE_ID_LENGTH) -> str:
    """Derive a short, stable machine id such as ``py-kqzhbwte``.

    Parameters
    ----------
    length : int
        Number of random letters after the prefix.

    Returns
    -------
    str
        The same value for every call on the same host.

    Examples
    --------
    >>> generate_machine_id() == generate_machine_id()
    True
    """
    rng = random.Random(int(host_fingerprint(), 16))
    letters = "".join(rng.choice(string.ascii_lowercase) for _ in range(length))
    return f"{MACHINE_ID_PREFIX}-{letters}"
