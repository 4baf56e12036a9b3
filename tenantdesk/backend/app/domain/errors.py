from __future__ import annotations


class ActionError(Exception):
    """
    Expected failure of a server action.

    Rendered by the API as {"success": false, "error": message} with
    status_code. Anything else escaping a handler is a bug and surfaces as 500.
    """

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = str(message)
        self.status_code = int(status_code)


class NotFoundError(ActionError):
    def __init__(self, message: str = "not found") -> None:
        super().__init__(message, status_code=404)


class ConflictError(ActionError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=409)
