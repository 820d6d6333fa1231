from enum import Enum

from pydantic import BaseModel


class IpFamily(str, Enum):
    IPV4 = "IPv4"
    IPV6 = "IPv6"
    UNKNOWN = "unknown"


class ClientContext(BaseModel):
    address: str
    family: IpFamily


class RequestContext(BaseModel):
    """Всё, что релей знает о вызывающей стороне в рамках одного запроса."""

    client: ClientContext
    user_agent: str = ""
    origin: str = ""
