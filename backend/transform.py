"""Password transformation applied by the deferred task path.

Any ``Callable[[str], str]`` can be injected into HashService; this is the
default.
"""

from __future__ import annotations

import base64
import hashlib
from typing import Callable

Transform = Callable[[str], str]


def sha512_base64(password: str) -> str:
    """SHA-512 of the UTF-8 password, URL-safe base64 encoded (padded)."""
    digest = hashlib.sha512(password.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")
