import logging
from typing import List

from models import db
from models.user import Role

logger = logging.getLogger(__name__)

# account_type at registration -> role name
ACCOUNT_TYPE_ROLES = {"customer": "CUSTOMER", "provider": "PROVIDER"}


def seed_roles() -> List[str]:
    """Creates any missing account roles and returns the names it added."""
    existing = {name for (name,) in db.session.query(Role.name).all()}
    created = [name for name in ACCOUNT_TYPE_ROLES.values() if name not in existing]
    for name in created:
        db.session.add(Role(name=name))
    if created:
        db.session.commit()
        logger.info("Seeded roles: %s", ", ".join(created))
    return created
