import contextvars

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_workflow_id: contextvars.ContextVar[str] = contextvars.ContextVar("workflow_id", default="-")


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_workflow_id(workflow_id: str) -> None:
    _workflow_id.set(workflow_id)


def get_workflow_id() -> str:
    return _workflow_id.get()


def clear_context() -> None:
    _request_id.set("-")
    _workflow_id.set("-")
