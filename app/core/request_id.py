"""Per-request correlation id carried through async tasks."""

import uuid
from contextvars import ContextVar, Token

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def generate_request_id() -> str:
    return uuid.uuid4().hex


def get_request_id() -> str:
    return request_id_var.get("")


def bind_request_id(request_id: str) -> Token:
    """Set the id for the current task; pass the token to ``reset_request_id``."""
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)
