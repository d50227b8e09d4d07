import base64

from pydantic import BaseModel


class MessageResponse(BaseModel):
    message: str


def encode_image(value: bytes | str | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return base64.b64encode(value).decode("ascii")
