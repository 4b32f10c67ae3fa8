from pydantic import BaseModel


class ProblemDetails(BaseModel):
    status: int
    code: str
    message: str
    request_id: str
    day: str | None = None


def problem(*, status: int, code: str, message: str, request_id: str, day: str | None = None) -> ProblemDetails:
    return ProblemDetails(status=status, code=code, message=message, request_id=request_id, day=day)
