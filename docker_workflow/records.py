"""Container records handed to the fingerprint/audit side of the build."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .errors import RecordIncomplete

# 2000-01-01T00:00:00Z; anything earlier means .Created was misread
CREATED_FLOOR_MS = 946684800000


@dataclass(frozen=True)
class ContainerRecord:
    """Which image a build ran, as which container, on which host, and when"""
    host: str
    container_id: str
    image_id: str
    container_name: str
    created: int
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def created_at(self):
        return datetime.fromtimestamp(self.created / 1000, tz=timezone.utc)

    def to_dict(self):
        return {
            'host': self.host,
            'containerId': self.container_id,
            'imageId': self.image_id,
            'containerName': self.container_name,
            'created': self.created,
            'tags': dict(self.tags),
        }


def build_container_record(container_id: str, image_id: Optional[str], container_name: Optional[str],
                           host: Optional[str], created: Optional[int],
                           tags: Optional[Dict[str, str]] = None) -> ContainerRecord:
    """Assemble a ContainerRecord, refusing missing or implausible fields"""
    fields = {
        'container id': container_id,
        'image id': image_id,
        'container name': container_name,
        'host': host,
    }
    missing = [name for name, value in fields.items() if not value]
    if created is None:
        missing.append('creation time')
    if missing:
        raise RecordIncomplete(f"Container '{container_id}' record is missing: {', '.join(missing)}")
    if created <= CREATED_FLOOR_MS:
        raise RecordIncomplete(f"Container '{container_id}' creation time {created} is not a plausible epoch-millisecond value")

    return ContainerRecord(
        host=host,
        container_id=container_id,
        image_id=image_id,
        container_name=container_name,
        created=created,
        tags=dict(tags or {}),
    )
