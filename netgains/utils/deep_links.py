"""
Invitation deep links.

Links look like ``https://<app-domain>/<sessionId>?phone=<phone>&invite=true``
for sessions and ``https://<app-domain>/g-<groupId>?phone=...&invite=true`` for
groups. The phone query value is URL-encoded, so ``+`` survives the trip.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit, parse_qs, quote, unquote

from netgains.config import settings
from netgains.schemas.invitation import InviteOwnerType

logger = logging.getLogger(__name__)

GROUP_PREFIX = "g-"


@dataclass(frozen=True)
class InviteLink:
    owner_type: InviteOwnerType
    owner_id: str
    phone: Optional[str] = None


def build_invite_link(owner_type: InviteOwnerType, owner_id: str, phone: Optional[str] = None,
                      domain: Optional[str] = None) -> str:
    domain = domain or settings.app_domain
    match owner_type:
        case InviteOwnerType.SESSION:
            path = owner_id
        case InviteOwnerType.GROUP:
            path = f"{GROUP_PREFIX}{owner_id}"

    params = {}
    if phone:
        params["phone"] = phone
    params["invite"] = "true"
    return f"https://{domain}/{quote(path, safe='')}?{urlencode(params)}"


def parse_invite_link(link: str) -> Optional[InviteLink]:
    """
    Parse a link produced by ``build_invite_link``.

    Returns:
        InviteLink or None when the link is not an invitation link
    """
    parts = urlsplit(link)
    path = unquote(parts.path.strip("/"))
    if not path or "/" in path:
        logger.debug(f"Not an invite link path: {link}")
        return None

    query = parse_qs(parts.query)
    if query.get("invite", ["false"])[0] != "true":
        return None

    phone = query.get("phone", [None])[0]
    if path.startswith(GROUP_PREFIX):
        return InviteLink(InviteOwnerType.GROUP, path[len(GROUP_PREFIX):], phone)
    return InviteLink(InviteOwnerType.SESSION, path, phone)
