import re
from typing import Iterable, List, Mapping, Optional

from app.schemas.context import ClientContext, IpFamily

# порядок важен: edge-заголовок CDN, затем reverse proxy, затем цепочка прокси
IP_HEADERS = ("cf-connecting-ip", "x-real-ip", "x-forwarded-for")
_IPV4 = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")


def collect_candidates(headers: Mapping[str, str], remote_address: Optional[str]) -> List[str]:
    sources: List[Optional[str]] = [headers.get(name) for name in IP_HEADERS]
    sources.append(remote_address)

    candidates: List[str] = []
    for source in sources:
        if not source:
            continue
        candidates.extend(part.strip() for part in source.split(",") if part.strip())
    return candidates


def classify(candidates: Iterable[str]) -> ClientContext:
    candidates = list(candidates)
    ipv6 = next((ip for ip in candidates if ":" in ip), None)
    if ipv6:
        return ClientContext(address=ipv6, family=IpFamily.IPV6)
    ipv4 = next((ip for ip in candidates if _IPV4.match(ip)), None)
    if ipv4:
        return ClientContext(address=ipv4, family=IpFamily.IPV4)
    return ClientContext(address=candidates[0] if candidates else "unknown", family=IpFamily.UNKNOWN)


def resolve_client_context(headers: Mapping[str, str], remote_address: Optional[str]) -> ClientContext:
    """IPv6 предпочтительнее IPv4 даже при более низком приоритете источника."""
    return classify(collect_candidates(headers, remote_address))
