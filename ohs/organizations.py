"""
Client organizations and the license serials issued to them.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from .config import ORGANIZATIONS_SLOT
from .license import generate_serial
from .models import Organization
from .utils import generate_id

logger = logging.getLogger(__name__)


class OrganizationRegistry:
    """Organizations persisted in the organizations slot.

    Args:
        slots: ``EncodedSlots`` holding the organizations slot.
    """

    def __init__(self, slots):
        self.slots = slots

    def list(self) -> List[Organization]:
        """Stored organizations. Unreadable data reads as an empty list."""
        data = self.slots.read(ORGANIZATIONS_SLOT)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Stored organization data unreadable")
            return []
        try:
            return [Organization.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Stored organization data malformed: {e}")
            return []

    def _save(self, organizations: List[Organization]) -> None:
        self.slots.write(ORGANIZATIONS_SLOT, [o.to_dict() for o in organizations])

    def get(self, org_id: str) -> Optional[Organization]:
        return next((o for o in self.list() if o.id == org_id), None)

    def add(self, name: str, contact_person: str = '') -> Tuple[bool, str, Optional[Organization]]:
        """Register an organization and issue it a fresh serial.

        Returns:
            (success, message, organization)
        """
        name = (name or '').strip()
        if not name:
            return False, "Organization name is required", None

        organization = Organization(
            id=generate_id(),
            name=name,
            contact_person=(contact_person or '').strip(),
            license_key=generate_serial(),
            created_at=datetime.now().isoformat()
        )
        organizations = self.list()
        organizations.append(organization)
        self._save(organizations)
        logger.info(f"Issued license for organization {name}")
        return True, "Organization added", organization

    def delete(self, org_id: str) -> Tuple[bool, str]:
        organizations = self.list()
        remaining = [o for o in organizations if o.id != org_id]
        if len(remaining) == len(organizations):
            return False, "Organization not found"
        self._save(remaining)
        logger.info(f"Deleted organization {org_id}")
        return True, "Organization deleted"
