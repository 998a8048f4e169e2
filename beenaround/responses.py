from typing import Any, Optional


def success(message: str) -> dict:
    return {"status": 200, "success": True, "message": message}


def success_with_data(message: str, data: Any) -> dict:
    return {"status": 200, "success": True, "message": message, "data": data}


def success_with_token(token: str, message: str, data: Any) -> dict:
    return {
        "status": 200,
        "success": True,
        "token": token,
        "message": message,
        "data": data,
    }


def error_body(status_code: int, message: str, error: Optional[str] = None) -> dict:
    body = {"status": status_code, "success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body
