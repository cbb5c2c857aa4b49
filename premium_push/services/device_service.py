import logging
from typing import Iterable, List, Optional

from premium_push.schemas.device import Device, DeviceLinkage
from premium_push.schemas.report import IntegrityWarning, LinkageSummary, LinkedDeviceView


log = logging.getLogger(__name__)

TOKEN_PREVIEW_LENGTH = 30


def token_preview(token: Optional[str], length: int = TOKEN_PREVIEW_LENGTH) -> str:
    if not token:
        return "NO TOKEN"
    return f"{token[:length]}..."


def resolve_devices(user_id: str, active_devices: Iterable[Device]) -> DeviceLinkage:
    """
    Split an active-device pool by strict owner equality.

    Devices owned by somebody else are outside this user's scope and are
    only counted. Duplicate device ids in the pool are collapsed.
    """
    linked: List[Device] = []
    unlinked: List[Device] = []
    foreign = 0
    seen = set()
    for device in active_devices:
        if not device.is_active or device.device_id in seen:
            continue
        seen.add(device.device_id)
        if device.user_id is None:
            unlinked.append(device)
        elif device.user_id == user_id:
            linked.append(device)
        else:
            foreign += 1
    return DeviceLinkage(linked=linked, unlinked=unlinked, foreign_count=foreign)


def integrity_warning(user_id: str, linkage: DeviceLinkage) -> Optional[IntegrityWarning]:
    if not linkage.unlinked:
        return None
    device_ids = [d.device_id for d in linkage.unlinked]
    log.warning(
        "User %s: %d active device(s) not linked to any user, they will not receive notifications: %s",
        user_id,
        len(device_ids),
        ", ".join(device_ids),
    )
    return IntegrityWarning(
        device_ids=device_ids,
        message="Devices are not linked to a user and will not receive notifications until the user logs in and links them",
    )


def summarize_linkage(user_id: str, linkage: DeviceLinkage) -> LinkageSummary:
    return LinkageSummary(
        linked=[
            LinkedDeviceView(device_id=d.device_id, platform=d.platform.value, token_preview=token_preview(d.push_token))
            for d in linkage.linked
        ],
        unlinked_device_ids=[d.device_id for d in linkage.unlinked],
        linked_without_token=[d.device_id for d in linkage.linked_without_token],
        foreign_count=linkage.foreign_count,
        integrity_warning=integrity_warning(user_id, linkage),
    )
