from typing import Any


def error_response(
    message: str,
    status: int = 400,
    code: str | None = None,
    retryable: bool | None = None,
) -> tuple[dict[str, Any], int]:
    payload: dict[str, Any] = {"error": message}
    if code is not None:
        payload["code"] = code
    if retryable is not None:
        payload["retryable"] = retryable
    return payload, status
