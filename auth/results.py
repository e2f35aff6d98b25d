"""
auth/results.py -- Result variants returned by AuthRepository operations.

Each operation returns a closed union of frozen dataclasses rather than
raising on business-rule violations. Callers branch on the variant:

    result = await repo.login(username, password)
    match result:
        case LoginSuccess(user=user):
            ...
        case Failure(message=message):
            ...

Failure is shared by every operation; its message is fixed, user-facing text.
Unexpected collaborator errors (database, hashing) are never wrapped here --
they propagate as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from auth.models import User


@dataclass(frozen=True)
class Failure:
    message: str


@dataclass(frozen=True)
class LoginSuccess:
    user: User


@dataclass(frozen=True)
class UserCreated:
    user_id: int


@dataclass(frozen=True)
class PasswordChanged:
    pass


LoginResult = Union[LoginSuccess, Failure]
CreateUserResult = Union[UserCreated, Failure]
ChangePasswordResult = Union[PasswordChanged, Failure]
