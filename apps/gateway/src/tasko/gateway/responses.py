"""统一错误响应格式 {"error": {"code", "message"}}"""

from starlette.responses import JSONResponse


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
            }
        },
    )


def not_signed_in() -> JSONResponse:
    return error_response(401, "NOT_SIGNED_IN", "No current user; sign in first")


def task_not_found(task_id: str) -> JSONResponse:
    return error_response(404, "TASK_NOT_FOUND", f"Task with id {task_id} does not exist")
