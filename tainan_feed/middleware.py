import re
import uuid

from fastapi import Request


REQUEST_ID_HEADER = "X-Request-ID"
_VALID_ID = re.compile(r"^[0-9a-f]{32}$")


async def request_id_middleware(request: Request, call_next):
    # Reuse a well-formed upstream ID, otherwise mint one
    incoming = request.headers.get(REQUEST_ID_HEADER, "").lower()
    request_id = incoming if _VALID_ID.match(incoming) else uuid.uuid4().hex

    # Lives for this request only
    request.state.request_id = request_id

    response = await call_next(request)

    response.headers[REQUEST_ID_HEADER] = request_id

    return response
