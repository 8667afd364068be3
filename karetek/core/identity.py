"""Caller identity resolved from the bearer token.

Downstream code matches on the two variants instead of checking for a
missing user.
"""
from dataclasses import dataclass
from typing import Optional, Union

@dataclass(frozen=True)
class Anonymous:
    pass

@dataclass(frozen=True)
class Authenticated:
    user_id: str
    email: Optional[str] = None

Identity = Union[Anonymous, Authenticated]

ANONYMOUS = Anonymous()
