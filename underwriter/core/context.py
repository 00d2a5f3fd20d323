import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_application_id: contextvars.ContextVar[str] = contextvars.ContextVar("application_id", default="-")


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_application_id(application_id: str) -> contextvars.Token:
    return _application_id.set(application_id)


def reset_application_id(token: contextvars.Token) -> None:
    _application_id.reset(token)


def get_application_id() -> str:
    return _application_id.get()
