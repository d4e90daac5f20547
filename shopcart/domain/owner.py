# shopcart/domain/owner.py
"""
Wlasciciel koszyka: zalogowany uzytkownik albo anonimowa sesja.

Zamknieta unia dwoch typow - pozycja koszyka nie moze nalezec
jednoczesnie do obu tozsamosci ani do zadnej.
"""
from dataclasses import dataclass
from typing import Union

from shopcart.domain.errors import InvalidOwnerError


@dataclass(frozen=True)
class UserOwner:
    id: int

    @property
    def lock_key(self) -> str:
        return f"cart:user:{self.id}:lock"

    def columns(self) -> dict:
        return {"user_id": self.id, "session_id": None}


@dataclass(frozen=True)
class SessionOwner:
    id: str

    @property
    def lock_key(self) -> str:
        return f"cart:session:{self.id}:lock"

    def columns(self) -> dict:
        return {"user_id": None, "session_id": self.id}


Owner = Union[UserOwner, SessionOwner]


def resolve_owner(user_id: int | None = None, session_id: str | None = None) -> Owner:
    # user_id ma pierwszenstwo, sesja potrzebna tylko do merge przy logowaniu
    if user_id:
        return UserOwner(int(user_id))
    if session_id:
        return SessionOwner(str(session_id))
    raise InvalidOwnerError("Wymagane user_id albo id sesji")


def describe(owner: Owner) -> dict:
    kind = "user" if isinstance(owner, UserOwner) else "session"
    return {"type": kind, "id": str(owner.id)}
